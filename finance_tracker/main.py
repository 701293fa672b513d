from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from finance_tracker import config
from finance_tracker.db.core import Base, engine, NotFoundError, ValidationError, ConflictError, StoreError
from finance_tracker.logging_config import setup_logging, get_logger
from finance_tracker.models.common import error_response
from finance_tracker.services.notifications import NotificationService
from finance_tracker.routers.users import router as users_router
from finance_tracker.routers.transactions import router as transactions_router
from finance_tracker.routers.budgets import router as budgets_router
from finance_tracker.routers.goals import router as goals_router
from finance_tracker.routers.notifications import router as notifications_router

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Finance Tracker API started")
    yield
    logger.info("Finance Tracker API stopped")


app = FastAPI(title="Finance Tracker API", lifespan=lifespan)
app.state.notifications = NotificationService()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== ERROR MAPPING =====

def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": _field_name(error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
            "value": error.get("input"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_response("Validation failed", errors)),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_response(exc.message, exc.errors)),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=error_response(str(exc)))


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_response(str(exc)))


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.exception(f"Store failure on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("Server error, please try again later"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


app.include_router(users_router)
app.include_router(transactions_router)
app.include_router(budgets_router)
app.include_router(goals_router)
app.include_router(notifications_router)


@app.get("/health")
def health_check():
    return {"status": "OK", "timestamp": datetime.utcnow().isoformat()}
