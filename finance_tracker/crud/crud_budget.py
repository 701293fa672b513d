from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc, func
from typing import Optional, List, Tuple
from datetime import datetime, date
from decimal import Decimal

from finance_tracker.db.core import (
    BudgetDB, TransactionDB, TransactionType,
    NotFoundError, ValidationError, ConflictError, StoreError
)
from finance_tracker.models.budget import BudgetCreate, BudgetUpdate
from finance_tracker.services.aggregation import triggered_thresholds
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)


# ===== VALIDATION HELPERS =====

def check_budget_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationError.for_field("end_date", "End date must be after start date", end_date.isoformat())


def check_category_conflict(db: Session, user_id: int, category: str, start_date: date, end_date: date,
                            exclude_budget_id: Optional[int] = None) -> None:
    """Only one active budget per category (case-insensitive) may cover any given day."""

    query = db.query(BudgetDB).filter(
        BudgetDB.user_id == user_id,
        BudgetDB.is_active.is_(True),
        func.lower(BudgetDB.category) == category.lower(),
        BudgetDB.start_date <= end_date,
        BudgetDB.end_date >= start_date
    )
    if exclude_budget_id is not None:
        query = query.filter(BudgetDB.id != exclude_budget_id)

    existing = query.first()
    if existing:
        raise ConflictError(
            f"An active budget for category '{existing.category}' already covers "
            f"{existing.start_date.isoformat()} to {existing.end_date.isoformat()}"
        )


# ===== DATABASE OPERATIONS =====

def create_db_budget(db: Session, user_id: int, budget_data: BudgetCreate,
                     today: Optional[date] = None) -> BudgetDB:
    """Create a new budget owned by user_id"""

    data = budget_data.model_dump()
    data["start_date"] = data["start_date"] or today or date.today()
    check_budget_dates(data["start_date"], data["end_date"])

    if data["is_active"]:
        check_category_conflict(db, user_id, data["category"], data["start_date"], data["end_date"])

    db_budget = BudgetDB(
        user_id=user_id,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
        **data
    )

    try:
        db.add(db_budget)
        db.commit()
        db.refresh(db_budget)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create budget for user {user_id}: {e}")
        raise StoreError("Budget creation failed") from e

    logger.info(f"Created budget {db_budget.id} '{db_budget.name}' for user {user_id}")
    return db_budget


def read_db_budget(db: Session, budget_id: int, user_id: int) -> BudgetDB:
    db_budget = db.query(BudgetDB).filter(
        BudgetDB.id == budget_id,
        BudgetDB.user_id == user_id
    ).first()

    if not db_budget:
        raise NotFoundError(f"Budget with id {budget_id} not found")
    return db_budget


def read_db_budgets(db: Session, user_id: int, is_active: Optional[bool] = None,
                    page: int = 1, limit: int = 10) -> Tuple[List[BudgetDB], int]:
    """Read one page of budgets, newest first; returns (items, total)"""

    query = db.query(BudgetDB).filter(BudgetDB.user_id == user_id)

    if is_active is not None:
        query = query.filter(BudgetDB.is_active.is_(is_active))

    total = query.count()
    items = query.order_by(desc(BudgetDB.created_at), desc(BudgetDB.id)).offset((page - 1) * limit).limit(limit).all()
    return items, total


def get_active_budgets(db: Session, user_id: int, today: date) -> List[BudgetDB]:
    """Active budgets whose window contains today, newest first"""
    return db.query(BudgetDB).filter(
        BudgetDB.user_id == user_id,
        BudgetDB.is_active.is_(True),
        BudgetDB.start_date <= today,
        BudgetDB.end_date >= today
    ).order_by(desc(BudgetDB.created_at), desc(BudgetDB.id)).all()


def update_db_budget(db: Session, budget_id: int, user_id: int, budget_updates: BudgetUpdate) -> BudgetDB:
    """Update an existing budget, re-checking the date window and category conflicts"""

    db_budget = read_db_budget(db, budget_id, user_id)

    update_data = budget_updates.model_dump(exclude_unset=True)
    for field in ("name", "category", "amount", "period", "start_date", "end_date", "is_active",
                  "alert_thresholds", "tags"):
        if field in update_data and update_data[field] is None:
            raise ValidationError.for_field(field, f"{field} cannot be null", None)

    # Validate the merged date window
    start_date = update_data.get("start_date", db_budget.start_date)
    end_date = update_data.get("end_date", db_budget.end_date)
    check_budget_dates(start_date, end_date)

    is_active = update_data.get("is_active", db_budget.is_active)
    category = update_data.get("category", db_budget.category)
    if is_active:
        check_category_conflict(db, user_id, category, start_date, end_date, exclude_budget_id=budget_id)

    for field, value in update_data.items():
        setattr(db_budget, field, value)

    db_budget.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_budget)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update budget {budget_id}: {e}")
        raise StoreError("Budget update failed") from e

    logger.info(f"Updated budget {budget_id} for user {user_id}")
    return db_budget


def delete_db_budget(db: Session, budget_id: int, user_id: int) -> bool:
    """Hard delete a budget; transactions are untouched"""

    db_budget = read_db_budget(db, budget_id, user_id)

    try:
        db.delete(db_budget)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete budget {budget_id}: {e}")
        raise StoreError("Budget deletion failed") from e

    logger.info(f"Deleted budget {budget_id} for user {user_id}")
    return True


# ===== ALERTS =====

def find_crossed_alerts(db: Session, transaction: TransactionDB) -> List[Tuple[BudgetDB, Decimal, float]]:
    """
    Budgets whose enabled alert thresholds were crossed by a newly stored expense.

    Returns (budget, spent, percentage) for each active budget in the expense's
    category whose window covers the expense date and where at least one
    threshold lies above the spend before the expense and at or below the
    spend after it.
    """
    if transaction.type != TransactionType.EXPENSE:
        return []

    budgets = db.query(BudgetDB).filter(
        BudgetDB.user_id == transaction.user_id,
        BudgetDB.is_active.is_(True),
        BudgetDB.category == transaction.category,
        BudgetDB.start_date <= transaction.transaction_date,
        BudgetDB.end_date >= transaction.transaction_date
    ).all()

    crossed = []
    for budget in budgets:
        if not budget.alert_thresholds or budget.amount <= 0:
            continue

        spent = db.query(func.coalesce(func.sum(TransactionDB.amount), 0)).filter(
            TransactionDB.user_id == budget.user_id,
            TransactionDB.type == TransactionType.EXPENSE,
            TransactionDB.category == budget.category,
            TransactionDB.transaction_date >= budget.start_date,
            TransactionDB.transaction_date <= budget.end_date
        ).scalar()
        spent = Decimal(str(spent)) if spent is not None else Decimal('0.00')

        limit = Decimal(str(budget.amount))
        after = float(spent / limit * 100)
        before = float((spent - Decimal(str(transaction.amount))) / limit * 100)

        newly_triggered = set(triggered_thresholds(budget, after)) - set(triggered_thresholds(budget, before))
        if newly_triggered:
            crossed.append((budget, spent, after))

    return crossed
