from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import update, case, and_, asc, func
from typing import Optional, List, Tuple
from datetime import datetime, date
from decimal import Decimal

from finance_tracker.db.core import (
    GoalDB, GoalMilestoneDB, GoalContributionDB, ContributionSource, GOAL_PRIORITY_RANK,
    NotFoundError, ValidationError, StoreError
)
from finance_tracker.models.goal import GoalCreate, GoalUpdate, MilestoneCreate
from finance_tracker.services.derivation import enforce_goal_completion
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

# Urgent first, unknown values last
PRIORITY_ORDER = case(
    *[(GoalDB.priority == priority, rank) for priority, rank in GOAL_PRIORITY_RANK.items()],
    else_=len(GOAL_PRIORITY_RANK)
)


# ===== UTILITY FUNCTIONS =====

def check_target_date(target_date: date, today: date) -> None:
    if target_date <= today:
        raise ValidationError.for_field("target_date", "Target date must be in the future", target_date.isoformat())


def build_milestones(milestones: List[MilestoneCreate], now: datetime) -> List[GoalMilestoneDB]:
    return [
        GoalMilestoneDB(
            position=position,
            name=milestone.name,
            target_amount=milestone.target_amount,
            is_completed=milestone.is_completed,
            completed_at=now if milestone.is_completed else None
        )
        for position, milestone in enumerate(milestones)
    ]


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise StoreError(f"Failed to {action}") from e


# ===== DATABASE OPERATIONS =====

def create_db_goal(db: Session, user_id: int, goal_data: GoalCreate, today: date) -> GoalDB:
    """Create a new goal; a goal created at or above its target starts out completed"""

    check_target_date(goal_data.target_date, today)
    now = datetime.utcnow()

    data = goal_data.model_dump(exclude={"milestones"})
    data["start_date"] = data["start_date"] or today

    db_goal = GoalDB(
        user_id=user_id,
        milestones=build_milestones(goal_data.milestones, now),
        created_at=now,
        updated_at=now,
        **data
    )
    db_goal.is_completed = False
    enforce_goal_completion(db_goal, now)

    db.add(db_goal)
    _commit(db, f"create goal for user {user_id}")
    db.refresh(db_goal)

    logger.info(f"Created goal {db_goal.id} '{db_goal.name}' for user {user_id}")
    return db_goal


def read_db_goal(db: Session, goal_id: int, user_id: int) -> GoalDB:
    db_goal = db.query(GoalDB).options(
        selectinload(GoalDB.milestones),
        selectinload(GoalDB.contributions)
    ).filter(
        GoalDB.id == goal_id,
        GoalDB.user_id == user_id
    ).first()

    if not db_goal:
        raise NotFoundError(f"Goal with id {goal_id} not found")
    return db_goal


def read_db_goals(db: Session, user_id: int, goal_type=None, is_active: Optional[bool] = None,
                  is_completed: Optional[bool] = None, page: int = 1,
                  limit: int = 10) -> Tuple[List[GoalDB], int]:
    """Read one page of goals ordered by priority then target date; returns (items, total)"""

    query = db.query(GoalDB).filter(GoalDB.user_id == user_id)

    if goal_type is not None:
        query = query.filter(GoalDB.type == goal_type)
    if is_active is not None:
        query = query.filter(GoalDB.is_active.is_(is_active))
    if is_completed is not None:
        query = query.filter(GoalDB.is_completed.is_(is_completed))

    total = query.count()
    items = query.options(
        selectinload(GoalDB.milestones),
        selectinload(GoalDB.contributions)
    ).order_by(
        PRIORITY_ORDER, asc(GoalDB.target_date), asc(GoalDB.id)
    ).offset((page - 1) * limit).limit(limit).all()
    return items, total


def get_active_goals(db: Session, user_id: int) -> List[GoalDB]:
    """Active, not yet completed goals, most pressing first"""
    return db.query(GoalDB).options(
        selectinload(GoalDB.milestones),
        selectinload(GoalDB.contributions)
    ).filter(
        GoalDB.user_id == user_id,
        GoalDB.is_active.is_(True),
        GoalDB.is_completed.is_(False)
    ).order_by(PRIORITY_ORDER, asc(GoalDB.target_date), asc(GoalDB.id)).all()


def update_db_goal(db: Session, goal_id: int, user_id: int, goal_updates: GoalUpdate, today: date) -> GoalDB:
    """Update an existing goal; completion is re-evaluated but never reverted"""

    db_goal = read_db_goal(db, goal_id, user_id)

    update_data = goal_updates.model_dump(exclude_unset=True, exclude={"milestones"})
    for field in ("name", "type", "target_amount", "current_amount", "target_date", "priority",
                  "is_active", "color", "icon", "tags"):
        if field in update_data and update_data[field] is None:
            raise ValidationError.for_field(field, f"{field} cannot be null", None)

    if "target_date" in update_data and update_data["target_date"] != db_goal.target_date:
        check_target_date(update_data["target_date"], today)

    now = datetime.utcnow()
    for field, value in update_data.items():
        setattr(db_goal, field, value)

    if "milestones" in goal_updates.model_fields_set:
        # Flush removals first so positions can be reused
        db_goal.milestones.clear()
        db.flush()
        db_goal.milestones.extend(build_milestones(goal_updates.milestones or [], now))

    enforce_goal_completion(db_goal, now)
    db_goal.updated_at = now

    _commit(db, f"update goal {goal_id}")
    db.refresh(db_goal)

    logger.info(f"Updated goal {goal_id} for user {user_id}")
    return db_goal


def delete_db_goal(db: Session, goal_id: int, user_id: int) -> bool:
    """Hard delete a goal together with its milestones and contributions"""

    db_goal = read_db_goal(db, goal_id, user_id)
    db.delete(db_goal)
    _commit(db, f"delete goal {goal_id}")

    logger.info(f"Deleted goal {goal_id} for user {user_id}")
    return True


def contribute_to_goal(db: Session, goal_id: int, user_id: int, amount: Decimal,
                       description: Optional[str] = None,
                       source: ContributionSource = ContributionSource.MANUAL) -> Tuple[GoalDB, bool]:
    """
    Add a contribution and raise the goal's current amount in one transaction.

    The increment and the completion flip happen inside a single UPDATE so
    concurrent contributions never lose each other's writes. The SET clauses
    read the pre-update row, which holds for PostgreSQL and SQLite.

    Returns the refreshed goal and whether this contribution completed it.
    """
    if amount is None or amount <= 0:
        raise ValidationError.for_field("amount", "Contribution amount must be positive",
                                        str(amount) if amount is not None else None)

    now = datetime.utcnow()
    # Amounts are kept at cents; SQLite stores DECIMAL as REAL
    new_amount = func.round(GoalDB.current_amount + amount, 2)
    reached = new_amount >= func.round(GoalDB.target_amount, 2)

    statement = update(GoalDB).where(
        GoalDB.id == goal_id,
        GoalDB.user_id == user_id
    ).values(
        current_amount=new_amount,
        is_completed=case((reached, True), else_=GoalDB.is_completed),
        completed_at=case(
            (and_(reached, GoalDB.is_completed.is_(False)), now),
            else_=GoalDB.completed_at
        ),
        updated_at=now
    ).execution_options(synchronize_session=False)

    try:
        result = db.execute(statement)
        if result.rowcount == 0:
            db.rollback()
            raise NotFoundError(f"Goal with id {goal_id} not found")

        db.add(GoalContributionDB(
            goal_id=goal_id,
            amount=amount,
            date=now,
            description=description,
            source=source
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to contribute {amount} to goal {goal_id}: {e}")
        raise StoreError("Contribution failed") from e

    db_goal = read_db_goal(db, goal_id, user_id)
    db.refresh(db_goal)
    completed_now = db_goal.is_completed and db_goal.completed_at == now

    logger.info(f"Contributed {amount} to goal {goal_id} for user {user_id}")
    if completed_now:
        logger.info(f"Goal {goal_id} reached its target of {db_goal.target_amount}")
    return db_goal, completed_now


def update_goal_milestone(db: Session, goal_id: int, user_id: int, index: int,
                          is_completed: bool = True) -> GoalDB:
    """Mark the milestone at ``index`` (0-based) completed or not"""

    db_goal = read_db_goal(db, goal_id, user_id)

    if index < 0 or index >= len(db_goal.milestones):
        raise ValidationError.for_field("index", "Invalid milestone index", index)

    milestone = db_goal.milestones[index]
    if is_completed and not milestone.is_completed:
        milestone.completed_at = datetime.utcnow()
    elif not is_completed:
        milestone.completed_at = None
    milestone.is_completed = is_completed
    db_goal.updated_at = datetime.utcnow()

    _commit(db, f"update milestone {index} of goal {goal_id}")
    db.refresh(db_goal)

    logger.info(f"Milestone {index} of goal {goal_id} set to completed={is_completed}")
    return db_goal
