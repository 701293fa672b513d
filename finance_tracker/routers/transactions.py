from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional, Literal
from datetime import date

from finance_tracker.crud import crud_transaction, crud_budget
from finance_tracker.models import transaction as transaction_models
from finance_tracker.models.common import success_response, paginated_response
from finance_tracker.db.core import get_db, UserDB, TransactionType, ValidationError
from finance_tracker.services import aggregation
from finance_tracker.services.security import get_current_user
from finance_tracker.services.notifications import NotificationService
from finance_tracker.routers.deps import get_today, get_notification_service, Pagination
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/transactions",
    tags=["transactions"],
)


def _check_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and end_date < start_date:
        raise ValidationError.for_field("endDate", "End date must not be before start date", end_date.isoformat())


def _publish_transaction_events(db: Session, notifications: NotificationService, transaction) -> None:
    notifications.transaction_added(transaction.user_id, transaction)
    for budget, spent, percentage in crud_budget.find_crossed_alerts(db, transaction):
        notifications.budget_alert(transaction.user_id, budget, spent, percentage)


@router.get("")
def read_transactions(
    pagination: Pagination = Depends(),
    sort: Literal["date", "amount", "category", "createdAt"] = Query("date"),
    order: Literal["asc", "desc"] = Query("desc"),
    type: Optional[TransactionType] = Query(None),
    category: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List the caller's transactions with filters, sorting and pagination.
    """
    _check_range(start_date, end_date)
    filters = transaction_models.TransactionFilter(
        type=type,
        category=category,
        date_from=start_date,
        date_to=end_date,
        search=search,
    )
    items, total = crud_transaction.read_db_transactions(
        db, current_user.id, filters=filters,
        page=pagination.page, limit=pagination.limit, sort=sort, order=order
    )
    transactions = [transaction_models.TransactionResponse.model_validate(t) for t in items]
    return paginated_response("transactions", transactions, total, pagination.page, pagination.limit)


@router.get("/stats")
def read_transaction_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Income and expense totals with net income.
    """
    _check_range(start_date, end_date)
    summary = aggregation.transaction_summary(db, current_user.id, start_date, end_date)
    return success_response({"stats": summary})


@router.get("/categories")
def read_category_breakdown(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Top ten expense categories by total.
    """
    _check_range(start_date, end_date)
    categories = aggregation.category_breakdown(db, current_user.id, start_date, end_date)
    return success_response({"categories": categories})


@router.get("/trends")
def read_monthly_trends(
    months: int = Query(6, ge=1, le=60),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Monthly income and expenses for the last N calendar months.
    """
    trends = aggregation.monthly_trends(db, current_user.id, months, today)
    return success_response({"trends": trends})


@router.get("/{transaction_id}")
def read_transaction(
    transaction_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db_transaction = crud_transaction.read_db_transaction(db, transaction_id, current_user.id)
    return success_response({"transaction": transaction_models.TransactionResponse.model_validate(db_transaction)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: transaction_models.TransactionCreate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    notifications: NotificationService = Depends(get_notification_service),
):
    """
    Create a new transaction.
    """
    db_transaction = crud_transaction.create_db_transaction(db, current_user.id, transaction, today=today)
    _publish_transaction_events(db, notifications, db_transaction)
    return success_response(
        {"transaction": transaction_models.TransactionResponse.model_validate(db_transaction)},
        message="Transaction created successfully",
    )


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: int,
    transaction: transaction_models.TransactionUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db_transaction = crud_transaction.update_db_transaction(db, transaction_id, current_user.id, transaction)
    return success_response(
        {"transaction": transaction_models.TransactionResponse.model_validate(db_transaction)},
        message="Transaction updated successfully",
    )


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud_transaction.delete_db_transaction(db, transaction_id, current_user.id)
    return success_response(message="Transaction deleted successfully")
