from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import or_, desc, asc
from typing import Optional, List, Tuple
from datetime import datetime, date

from finance_tracker.db.core import TransactionDB, NotFoundError, ValidationError, StoreError
from finance_tracker.models.transaction import TransactionCreate, TransactionUpdate, TransactionFilter
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

# Public sort keys mapped to columns
SORT_COLUMNS = {
    "date": TransactionDB.transaction_date,
    "amount": TransactionDB.amount,
    "category": TransactionDB.category,
    "createdAt": TransactionDB.created_at,
}


# ===== UTILITY FUNCTIONS =====

def prepare_recurring_pattern(is_recurring: bool, pattern: Optional[dict], transaction_date: date) -> Optional[dict]:
    """Seed next_due_date with the transaction date; it is never advanced afterwards."""
    if not pattern:
        return None
    pattern = dict(pattern)
    if is_recurring and not pattern.get("next_due_date"):
        pattern["next_due_date"] = transaction_date.isoformat()
    return pattern


# ===== DATABASE OPERATIONS =====

def create_db_transaction(db: Session, user_id: int, transaction_data: TransactionCreate,
                          today: Optional[date] = None) -> TransactionDB:
    """Create a new transaction owned by user_id"""

    data = transaction_data.model_dump(exclude={"recurring_pattern"})
    transaction_date = data.pop("transaction_date") or today or date.today()
    pattern = None
    if transaction_data.recurring_pattern is not None:
        pattern = transaction_data.recurring_pattern.model_dump(mode="json")

    db_transaction = TransactionDB(
        user_id=user_id,
        transaction_date=transaction_date,
        recurring_pattern=prepare_recurring_pattern(data["is_recurring"], pattern, transaction_date),
        verified_at=datetime.utcnow() if data["is_verified"] else None,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
        **data
    )

    try:
        db.add(db_transaction)
        db.commit()
        db.refresh(db_transaction)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create transaction for user {user_id}: {e}")
        raise StoreError("Transaction creation failed") from e

    logger.info(f"Created {db_transaction.type.value} transaction {db_transaction.id} for user {user_id}")
    return db_transaction


def read_db_transaction(db: Session, transaction_id: int, user_id: int) -> TransactionDB:
    """Read a single transaction; foreign records look exactly like missing ones"""

    db_transaction = db.query(TransactionDB).filter(
        TransactionDB.id == transaction_id,
        TransactionDB.user_id == user_id
    ).first()

    if not db_transaction:
        raise NotFoundError(f"Transaction with id {transaction_id} not found")
    return db_transaction


def read_db_transactions(db: Session, user_id: int, filters: Optional[TransactionFilter] = None,
                         page: int = 1, limit: int = 10, sort: str = "date",
                         order: str = "desc") -> Tuple[List[TransactionDB], int]:
    """Read one page of transactions with filtering; returns (items, total)"""

    query = db.query(TransactionDB).filter(TransactionDB.user_id == user_id)

    if filters:
        if filters.type:
            query = query.filter(TransactionDB.type == filters.type)

        if filters.category:
            query = query.filter(TransactionDB.category.ilike(f"%{filters.category}%"))

        if filters.date_from:
            query = query.filter(TransactionDB.transaction_date >= filters.date_from)

        if filters.date_to:
            query = query.filter(TransactionDB.transaction_date <= filters.date_to)

        if filters.search:
            query = query.filter(
                or_(
                    TransactionDB.description.ilike(f"%{filters.search}%"),
                    TransactionDB.category.ilike(f"%{filters.search}%")
                )
            )

    total = query.count()

    order_column = SORT_COLUMNS.get(sort, TransactionDB.transaction_date)
    direction = asc if order == "asc" else desc
    query = query.order_by(direction(order_column), direction(TransactionDB.id))

    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def update_db_transaction(db: Session, transaction_id: int, user_id: int,
                          transaction_updates: TransactionUpdate) -> TransactionDB:
    """Update an existing transaction; the owner is never reassigned"""

    db_transaction = read_db_transaction(db, transaction_id, user_id)

    update_data = transaction_updates.model_dump(exclude_unset=True)
    if transaction_updates.recurring_pattern is not None:
        update_data["recurring_pattern"] = transaction_updates.recurring_pattern.model_dump(mode="json")
    for field in ("type", "amount", "description", "category", "transaction_date", "payment_method",
                  "tags", "is_recurring", "is_verified"):
        if field in update_data and update_data[field] is None:
            raise ValidationError.for_field(field, f"{field} cannot be null", None)

    is_recurring = update_data.get("is_recurring", db_transaction.is_recurring)
    pattern = update_data.get("recurring_pattern", db_transaction.recurring_pattern)
    if is_recurring and not pattern:
        raise ValidationError.for_field(
            "recurring_pattern", "recurring_pattern is required for recurring transactions", None
        )

    if "is_verified" in update_data and update_data["is_verified"] != db_transaction.is_verified:
        db_transaction.verified_at = datetime.utcnow() if update_data["is_verified"] else None

    for field, value in update_data.items():
        if field == "recurring_pattern":
            continue
        setattr(db_transaction, field, value)

    if "recurring_pattern" in update_data or "is_recurring" in update_data:
        db_transaction.recurring_pattern = prepare_recurring_pattern(
            is_recurring, pattern, db_transaction.transaction_date
        )

    # Always update the updated_at timestamp
    db_transaction.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_transaction)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update transaction {transaction_id}: {e}")
        raise StoreError("Transaction update failed") from e

    logger.info(f"Updated transaction {transaction_id} for user {user_id}")
    return db_transaction


def delete_db_transaction(db: Session, transaction_id: int, user_id: int) -> bool:
    """Hard delete a transaction"""

    db_transaction = read_db_transaction(db, transaction_id, user_id)

    try:
        db.delete(db_transaction)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete transaction {transaction_id}: {e}")
        raise StoreError("Transaction deletion failed") from e

    logger.info(f"Deleted transaction {transaction_id} for user {user_id}")
    return True
