from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Optional
from datetime import datetime
import bcrypt

from finance_tracker.db.core import UserDB, NotFoundError, ValidationError, ConflictError, StoreError
from finance_tracker.models.user import UserCreate, UserUpdate, PasswordChange, UserPreferences
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)


# ===== PASSWORD HASHING UTILITIES =====

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash"""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation while trying to {action}: {e}")
        raise ConflictError("User already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise StoreError(f"Failed to {action}") from e


# ===== DATABASE OPERATIONS =====

def create_db_user(db: Session, user_data: UserCreate) -> UserDB:
    """Register a new user; email addresses are unique"""

    existing_user = db.query(UserDB).filter(UserDB.email == user_data.email).first()
    if existing_user:
        raise ConflictError("User already exists with this email")

    now = datetime.utcnow()
    db_user = UserDB(
        name=user_data.name,
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        is_active=True,
        preferences=UserPreferences().model_dump(),
        last_login_at=now,
        created_at=now,
        updated_at=now
    )

    db.add(db_user)
    _commit(db, f"register user {user_data.email}")
    db.refresh(db_user)

    logger.info(f"Registered user {db_user.id}")
    return db_user


def read_db_user(db: Session, user_id: Optional[int] = None, email: Optional[str] = None) -> Optional[UserDB]:
    """Read a user by id or email"""

    query = db.query(UserDB)

    if user_id:
        return query.filter(UserDB.id == user_id).first()
    elif email:
        return query.filter(UserDB.email == email.lower().strip()).first()
    else:
        raise ValueError("Must provide at least one identifier (user_id or email)")


def authenticate_user(db: Session, email: str, password: str) -> Optional[UserDB]:
    """Check credentials; deactivated accounts never authenticate"""

    user = read_db_user(db, email=email)
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    # Update last login time
    user.last_login_at = datetime.utcnow()
    _commit(db, f"record login for user {user.id}")
    db.refresh(user)

    logger.info(f"User {user.id} logged in")
    return user


def update_db_user(db: Session, user_id: int, user_updates: UserUpdate) -> UserDB:
    """Update name and merge preferences"""

    db_user = read_db_user(db, user_id=user_id)
    if not db_user:
        raise NotFoundError(f"User with id {user_id} not found")

    if user_updates.name is not None:
        db_user.name = user_updates.name

    if user_updates.preferences is not None:
        preferences = dict(db_user.preferences or UserPreferences().model_dump())
        preferences.update(user_updates.preferences.model_dump(exclude_none=True))
        db_user.preferences = preferences

    db_user.updated_at = datetime.utcnow()

    _commit(db, f"update user {user_id}")
    db.refresh(db_user)

    logger.info(f"Updated profile of user {user_id}")
    return db_user


def change_user_password(db: Session, user_id: int, password_change: PasswordChange) -> UserDB:
    """Change a user's password after verifying the current one"""

    db_user = read_db_user(db, user_id=user_id)
    if not db_user:
        raise NotFoundError(f"User with id {user_id} not found")

    if not verify_password(password_change.current_password, db_user.password_hash):
        raise ValidationError.for_field("current_password", "Current password is incorrect")

    db_user.password_hash = hash_password(password_change.new_password)
    db_user.updated_at = datetime.utcnow()

    _commit(db, f"change password of user {user_id}")
    db.refresh(db_user)

    logger.info(f"Password changed for user {user_id}")
    return db_user


def deactivate_db_user(db: Session, user_id: int, password: str) -> UserDB:
    """Soft delete: the account is deactivated, owned records are kept"""

    db_user = read_db_user(db, user_id=user_id)
    if not db_user:
        raise NotFoundError(f"User with id {user_id} not found")

    if not verify_password(password, db_user.password_hash):
        raise ValidationError.for_field("password", "Password is incorrect")

    db_user.is_active = False
    db_user.updated_at = datetime.utcnow()

    _commit(db, f"deactivate user {user_id}")
    db.refresh(db_user)

    logger.info(f"Deactivated user {user_id}")
    return db_user
