from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from finance_tracker.crud import crud_budget
from finance_tracker.models import budget as budget_models
from finance_tracker.models.common import success_response, paginated_response
from finance_tracker.db.core import get_db, UserDB
from finance_tracker.services import aggregation
from finance_tracker.services.security import get_current_user
from finance_tracker.routers.deps import get_today, Pagination

router = APIRouter(
    prefix="/api/budgets",
    tags=["budgets"],
)


@router.get("")
def read_budgets(
    pagination: Pagination = Depends(),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    List the caller's budgets, newest first.
    """
    items, total = crud_budget.read_db_budgets(
        db, current_user.id, is_active=is_active, page=pagination.page, limit=pagination.limit
    )
    budgets = [budget_models.BudgetResponse.from_record(b, today) for b in items]
    return paginated_response("budgets", budgets, total, pagination.page, pagination.limit)


@router.get("/active")
def read_active_budgets(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Active budgets whose date window contains today.
    """
    budgets = crud_budget.get_active_budgets(db, current_user.id, today)
    return success_response({"budgets": [budget_models.BudgetResponse.from_record(b, today) for b in budgets]})


@router.get("/{budget_id}")
def read_budget(
    budget_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    db_budget = crud_budget.read_db_budget(db, budget_id, current_user.id)
    return success_response({"budget": budget_models.BudgetResponse.from_record(db_budget, today)})


@router.get("/{budget_id}/performance")
def read_budget_performance(
    budget_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Spending against the budget: total spent, remaining, capped and actual percentages.
    """
    performance = aggregation.budget_performance(db, budget_id, current_user.id, today)
    return success_response({"performance": performance})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: budget_models.BudgetCreate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    db_budget = crud_budget.create_db_budget(db, current_user.id, budget, today=today)
    return success_response(
        {"budget": budget_models.BudgetResponse.from_record(db_budget, today)},
        message="Budget created successfully",
    )


@router.put("/{budget_id}")
def update_budget(
    budget_id: int,
    budget: budget_models.BudgetUpdate,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    db_budget = crud_budget.update_db_budget(db, budget_id, current_user.id, budget)
    return success_response(
        {"budget": budget_models.BudgetResponse.from_record(db_budget, today)},
        message="Budget updated successfully",
    )


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: int,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    crud_budget.delete_db_budget(db, budget_id, current_user.id)
    return success_response(message="Budget deleted successfully")
