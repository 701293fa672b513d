from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from finance_tracker.crud import crud_goal
from finance_tracker.models import goal as goal_models
from finance_tracker.models.common import success_response, paginated_response
from finance_tracker.db.core import get_db, UserDB, GoalType
from finance_tracker.services import aggregation
from finance_tracker.services.security import get_current_user
from finance_tracker.services.notifications import NotificationService
from finance_tracker.routers.deps import get_today, get_notification_service, Pagination

router = APIRouter(
    prefix="/api/goals",
    tags=["goals"],
)


def _goal_payload(db_goal, today: date) -> dict:
    return {"goal": goal_models.GoalResponse.from_record(db_goal, today)}


@router.get("")
def read_goals(
    pagination: Pagination = Depends(),
    type: Optional[GoalType] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_completed: Optional[bool] = Query(None, alias="isCompleted"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    List the caller's goals, urgent first then by target date.
    """
    items, total = crud_goal.read_db_goals(
        db, current_user.id, goal_type=type, is_active=is_active, is_completed=is_completed,
        page=pagination.page, limit=pagination.limit
    )
    goals = [goal_models.GoalResponse.from_record(g, today) for g in items]
    return paginated_response("goals", goals, total, pagination.page, pagination.limit)


@router.get("/active")
def read_active_goals(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    goals = crud_goal.get_active_goals(db, current_user.id)
    return success_response({"goals": [goal_models.GoalResponse.from_record(g, today) for g in goals]})


@router.get("/stats")
def read_goal_stats(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Counts, totals and overall progress across all of the caller's goals.
    """
    return success_response({"stats": aggregation.goal_stats(db, current_user.id, today)})


@router.get("/{goal_id}")
def read_goal(
    goal_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    db_goal = crud_goal.read_db_goal(db, goal_id, current_user.id)
    return success_response(_goal_payload(db_goal, today))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_goal(
    goal: goal_models.GoalCreate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    notifications: NotificationService = Depends(get_notification_service),
):
    db_goal = crud_goal.create_db_goal(db, current_user.id, goal, today)
    if db_goal.is_completed:
        notifications.goal_completed(current_user.id, db_goal)
    return success_response(_goal_payload(db_goal, today), message="Goal created successfully")


@router.put("/{goal_id}")
def update_goal(
    goal_id: int,
    goal: goal_models.GoalUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    notifications: NotificationService = Depends(get_notification_service),
):
    was_completed = crud_goal.read_db_goal(db, goal_id, current_user.id).is_completed
    db_goal = crud_goal.update_db_goal(db, goal_id, current_user.id, goal, today)
    if db_goal.is_completed and not was_completed:
        notifications.goal_completed(current_user.id, db_goal)
    return success_response(_goal_payload(db_goal, today), message="Goal updated successfully")


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud_goal.delete_db_goal(db, goal_id, current_user.id)
    return success_response(message="Goal deleted successfully")


@router.post("/{goal_id}/contribute")
def contribute_to_goal(
    goal_id: int,
    contribution: goal_models.ContributionCreate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    notifications: NotificationService = Depends(get_notification_service),
):
    """
    Add a contribution to a goal and raise its current amount atomically.
    """
    db_goal, completed_now = crud_goal.contribute_to_goal(
        db, goal_id, current_user.id,
        amount=contribution.amount,
        description=contribution.description,
        source=contribution.source,
    )
    if completed_now:
        notifications.goal_completed(current_user.id, db_goal)
    return success_response(_goal_payload(db_goal, today), message="Contribution added successfully")


@router.patch("/{goal_id}/milestones/{index}")
def update_milestone(
    goal_id: int,
    index: int,
    milestone: goal_models.MilestoneUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    db_goal = crud_goal.update_goal_milestone(db, goal_id, current_user.id, index, milestone.is_completed)
    return success_response(_goal_payload(db_goal, today), message="Milestone updated successfully")
