from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from finance_tracker.crud import crud_user
from finance_tracker.models import user as user_models
from finance_tracker.models.common import success_response
from finance_tracker.db.core import get_db, UserDB
from finance_tracker.services.security import create_access_token, get_current_user

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


def _token_payload(db_user: UserDB) -> user_models.Token:
    return user_models.Token(
        access_token=create_access_token(db_user.id),
        user=user_models.UserResponse.model_validate(db_user),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user: user_models.UserCreate, db: Session = Depends(get_db)):
    """
    Create a new account and return a bearer token for it.
    """
    db_user = crud_user.create_db_user(db=db, user_data=user)
    return success_response(_token_payload(db_user), message="User registered successfully")


@router.post("/login")
def login(user_login: user_models.UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate user and return a token.
    """
    db_user = crud_user.authenticate_user(db, email=user_login.email, password=user_login.password)
    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return success_response(_token_payload(db_user), message="Login successful")


@router.get("/me")
def read_me(current_user: UserDB = Depends(get_current_user)):
    return success_response({"user": user_models.UserResponse.model_validate(current_user)})


@router.put("/update-profile")
def update_profile(
    user: user_models.UserUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the display name and merge preference changes.
    """
    db_user = crud_user.update_db_user(db=db, user_id=current_user.id, user_updates=user)
    return success_response(
        {"user": user_models.UserResponse.model_validate(db_user)},
        message="Profile updated successfully",
    )


@router.put("/update-password")
def update_password(
    password_change: user_models.PasswordChange,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud_user.change_user_password(db=db, user_id=current_user.id, password_change=password_change)
    return success_response(message="Password updated successfully")


@router.delete("/delete-account")
def delete_account(
    account_delete: user_models.AccountDelete,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Deactivate the account. Records are kept; the account can no longer log in.
    """
    crud_user.deactivate_db_user(db=db, user_id=current_user.id, password=account_delete.password)
    return success_response(message="Account deactivated successfully")
