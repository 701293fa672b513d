"""
Owner-Scoped Aggregations

Summary queries over a single user's records: income/expense totals, category
breakdowns, monthly trends, budget performance and goal statistics. Every
query filters by ``user_id`` first; nothing here writes.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func, extract
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from finance_tracker.db.core import TransactionDB, BudgetDB, GoalDB, TransactionType, NotFoundError
from finance_tracker.models.transaction import TypeTotal, TransactionSummary, CategoryTotal, MonthlyTrend
from finance_tracker.models.budget import BudgetResponse, BudgetPerformance
from finance_tracker.models.goal import GoalStats
from finance_tracker.services.derivation import goal_status
from finance_tracker.logging_config import get_logger

logger = get_logger(__name__)

CATEGORY_BREAKDOWN_LIMIT = 10


def _to_decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal('0.00')


def _apply_date_range(query, start_date: Optional[date], end_date: Optional[date]):
    # Range only applies when both ends are supplied
    if start_date is not None and end_date is not None:
        query = query.filter(
            TransactionDB.transaction_date >= start_date,
            TransactionDB.transaction_date <= end_date
        )
    return query


# ===== TRANSACTION AGGREGATES =====

def transaction_summary(db: Session, user_id: int,
                        start_date: Optional[date] = None,
                        end_date: Optional[date] = None) -> TransactionSummary:
    """Totals and counts per transaction type; missing types default to zero."""
    query = db.query(
        TransactionDB.type,
        func.coalesce(func.sum(TransactionDB.amount), 0).label('total'),
        func.count(TransactionDB.id).label('count')
    ).filter(TransactionDB.user_id == user_id)
    query = _apply_date_range(query, start_date, end_date)

    totals = {TransactionType.INCOME: TypeTotal(), TransactionType.EXPENSE: TypeTotal()}
    for txn_type, total, count in query.group_by(TransactionDB.type).all():
        totals[txn_type] = TypeTotal(total=_to_decimal(total), count=count)

    income = totals[TransactionType.INCOME]
    expense = totals[TransactionType.EXPENSE]
    return TransactionSummary(
        income=income,
        expense=expense,
        net_income=income.total - expense.total
    )


def category_breakdown(db: Session, user_id: int,
                       start_date: Optional[date] = None,
                       end_date: Optional[date] = None) -> List[CategoryTotal]:
    """
    Expense totals per category, largest first, at most ten entries.

    Equal totals keep the order in which their categories first appeared.
    """
    total_column = func.sum(TransactionDB.amount).label('total')
    query = db.query(
        TransactionDB.category,
        total_column,
        func.count(TransactionDB.id).label('count')
    ).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.type == TransactionType.EXPENSE
    )
    query = _apply_date_range(query, start_date, end_date)

    rows = query.group_by(TransactionDB.category).order_by(
        total_column.desc(),
        func.min(TransactionDB.id).asc()
    ).limit(CATEGORY_BREAKDOWN_LIMIT).all()

    return [
        CategoryTotal(category=category, total=_to_decimal(total), count=count)
        for category, total, count in rows
    ]


def _month_starts(today: date, months: int) -> List[date]:
    """First day of each of the last ``months`` calendar months, oldest first."""
    year, month = today.year, today.month
    starts = []
    for _ in range(months):
        starts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(starts))


def _next_month(start: date) -> date:
    if start.month == 12:
        return date(start.year + 1, 1, 1)
    return date(start.year, start.month + 1, 1)


def monthly_trends(db: Session, user_id: int, months: int, today: date) -> List[MonthlyTrend]:
    """Income, expenses and net income for each of the last ``months`` calendar months, including the current one."""
    if months < 1:
        return []

    starts = _month_starts(today, months)
    year_column = extract('year', TransactionDB.transaction_date)
    month_column = extract('month', TransactionDB.transaction_date)

    rows = db.query(
        year_column.label('year'),
        month_column.label('month'),
        TransactionDB.type,
        func.coalesce(func.sum(TransactionDB.amount), 0).label('total')
    ).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.transaction_date >= starts[0],
        TransactionDB.transaction_date < _next_month(starts[-1])
    ).group_by(year_column, month_column, TransactionDB.type).all()

    buckets = {(start.year, start.month): {TransactionType.INCOME: Decimal('0.00'), TransactionType.EXPENSE: Decimal('0.00')}
               for start in starts}
    for year, month, txn_type, total in rows:
        key = (int(year), int(month))
        if key in buckets:
            buckets[key][txn_type] = _to_decimal(total)

    trends = []
    for start in starts:
        bucket = buckets[(start.year, start.month)]
        income = bucket[TransactionType.INCOME]
        expenses = bucket[TransactionType.EXPENSE]
        trends.append(MonthlyTrend(
            year=start.year,
            month=start.month,
            month_start=start,
            income=income,
            expenses=expenses,
            net_income=income - expenses
        ))
    return trends


# ===== BUDGET PERFORMANCE =====

def _budget_spending(db: Session, budget: BudgetDB) -> Tuple[Decimal, int]:
    """Sum and count of the owner's expenses in the budget category within [start, end]"""
    total, count = db.query(
        func.coalesce(func.sum(TransactionDB.amount), 0),
        func.count(TransactionDB.id)
    ).filter(
        TransactionDB.user_id == budget.user_id,
        TransactionDB.type == TransactionType.EXPENSE,
        TransactionDB.category == budget.category,
        TransactionDB.transaction_date >= budget.start_date,
        TransactionDB.transaction_date <= budget.end_date
    ).one()
    return _to_decimal(total), count


def triggered_thresholds(budget: BudgetDB, actual_percentage: float) -> List[float]:
    """Enabled alert thresholds at or below the actual spend percentage."""
    return sorted(
        float(threshold['percentage'])
        for threshold in (budget.alert_thresholds or [])
        if threshold.get('is_enabled', True) and actual_percentage >= float(threshold['percentage'])
    )


def budget_performance(db: Session, budget_id: int, user_id: int, today: date) -> BudgetPerformance:
    budget = db.query(BudgetDB).filter(
        BudgetDB.id == budget_id,
        BudgetDB.user_id == user_id
    ).first()

    if not budget:
        raise NotFoundError(f"Budget with id {budget_id} not found")

    total_spent, transaction_count = _budget_spending(db, budget)
    limit = _to_decimal(budget.amount)
    actual_percentage = float(total_spent / limit * 100) if limit > 0 else 0.0

    return BudgetPerformance(
        budget=BudgetResponse.from_record(budget, today),
        total_spent=total_spent,
        remaining=limit - total_spent,
        percentage=round(min(actual_percentage, 100.0), 2),
        actual_percentage=round(actual_percentage, 2),
        is_over_budget=total_spent > limit,
        transactions=transaction_count,
        triggered_alerts=triggered_thresholds(budget, actual_percentage)
    )


# ===== GOAL STATISTICS =====

def goal_stats(db: Session, user_id: int, today: date) -> GoalStats:
    goals = db.query(GoalDB).filter(GoalDB.user_id == user_id).all()

    total_target = sum((_to_decimal(goal.target_amount) for goal in goals), Decimal('0.00'))
    total_current = sum((_to_decimal(goal.current_amount) for goal in goals), Decimal('0.00'))
    overall_progress = float(total_current / total_target * 100) if total_target > 0 else 0.0

    return GoalStats(
        total=len(goals),
        active=sum(1 for goal in goals if goal.is_active and not goal.is_completed),
        completed=sum(1 for goal in goals if goal.is_completed),
        overdue=sum(1 for goal in goals if goal_status(goal, today) == 'overdue'),
        total_target_amount=total_target,
        total_current_amount=total_current,
        overall_progress=round(overall_progress, 2)
    )
