"""
Derived Record Views

Pure functions computing progress, status and time-remaining views for a
single goal or budget. Every function takes the record plus an explicit
``today`` so results never depend on the wall clock. Nothing here is persisted
except through ``enforce_goal_completion``, the one helper that mutates a goal.
"""
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Any, Optional

from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

ALMOST_THERE_PERCENTAGE = 90
GOOD_PROGRESS_PERCENTAGE = 50
DAYS_PER_MONTH = 30


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal('0.00')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _raw_goal_percentage(goal) -> Decimal:
    target = _as_decimal(goal.target_amount)
    if target <= 0:
        return Decimal('0')
    return _as_decimal(goal.current_amount) / target * 100


# ===== GOAL VIEWS =====

def goal_progress(goal) -> Dict[str, Any]:
    """Progress percentage capped at 100; remaining never goes below zero."""
    current = _as_decimal(goal.current_amount)
    target = _as_decimal(goal.target_amount)
    percentage = min(_raw_goal_percentage(goal), Decimal('100'))

    return {
        'percentage': round(float(percentage), 2),
        'amount': current,
        'target': target,
        'remaining': max(target - current, Decimal('0.00')),
    }


def goal_status(goal, today: date) -> str:
    """
    Status precedence is fixed: completed > achieved > overdue > almost_there
    > good_progress > just_started. An overdue goal at 95% reads ``overdue``.
    """
    if goal.is_completed:
        return 'completed'
    if _as_decimal(goal.current_amount) >= _as_decimal(goal.target_amount):
        return 'achieved'
    if today > goal.target_date:
        return 'overdue'

    percentage = min(_raw_goal_percentage(goal), Decimal('100'))
    if percentage >= ALMOST_THERE_PERCENTAGE:
        return 'almost_there'
    if percentage >= GOOD_PROGRESS_PERCENTAGE:
        return 'good_progress'
    return 'just_started'


def goal_time_remaining(goal, today: date) -> Dict[str, Any]:
    days = (goal.target_date - today).days

    if days < 0:
        return {'days': 0, 'status': 'overdue'}
    if days == 0:
        return {'days': 0, 'status': 'due_today'}
    if days <= 7:
        return {'days': days, 'status': 'due_soon'}
    if days <= 30:
        return {'days': days, 'status': 'due_this_month'}
    return {'days': days, 'status': 'plenty_of_time'}


def suggested_monthly_contribution(goal, today: date) -> Decimal:
    """ceil(remaining / months-to-target) with months = ceil(days / 30); zero once the date has passed."""
    days = (goal.target_date - today).days
    months = math.ceil(days / DAYS_PER_MONTH)
    if months <= 0:
        return Decimal('0')

    remaining = max(_as_decimal(goal.target_amount) - _as_decimal(goal.current_amount), Decimal('0'))
    return Decimal(math.ceil(remaining / months))


def enforce_goal_completion(goal, now: Optional[datetime] = None) -> bool:
    """
    Flip a goal to completed once its current amount reaches the target.

    Returns True only when this call performed the flip. A goal that is already
    completed keeps its original ``completed_at``.
    """
    if goal.is_completed:
        return False
    if _as_decimal(goal.current_amount) < _as_decimal(goal.target_amount):
        return False

    goal.is_completed = True
    goal.completed_at = now or datetime.utcnow()
    logger.debug(f"Goal {getattr(goal, 'id', None)} reached its target and was marked completed")
    return True


# ===== BUDGET VIEWS =====

def budget_status(budget, today: date) -> str:
    if today < budget.start_date:
        return 'upcoming'
    if today > budget.end_date:
        return 'expired'
    return 'active'


def budget_time_remaining(budget, today: date) -> Dict[str, Any]:
    days = (budget.end_date - today).days

    if days < 0:
        return {'days': 0, 'status': 'expired'}
    if days == 0:
        return {'days': 0, 'status': 'ends_today'}
    if days <= 7:
        return {'days': days, 'status': 'ending_soon'}
    return {'days': days, 'status': 'active'}
