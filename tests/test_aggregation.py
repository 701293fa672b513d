from datetime import date, timedelta
from decimal import Decimal

import pytest

from finance_tracker.db.core import (
    TransactionDB, BudgetDB, GoalDB, UserDB, TransactionType, NotFoundError
)
from finance_tracker.services import aggregation

TODAY = date(2024, 1, 15)


def add_transaction(db, user, type, amount, category="Food", on=TODAY, description="Item"):
    txn = TransactionDB(
        user_id=user.id,
        type=type,
        amount=Decimal(amount),
        description=description,
        category=category,
        transaction_date=on,
    )
    db.add(txn)
    db.commit()
    return txn


@pytest.fixture
def stranger(db_session):
    db_user = UserDB(name="Stranger", email="stranger@example.com", password_hash="x", preferences={})
    db_session.add(db_user)
    db_session.commit()
    return db_user


# ===== TRANSACTION SUMMARY =====

def test_transaction_summary_net_income(db_session, user):
    add_transaction(db_session, user, TransactionType.INCOME, "1000.00", category="Salary")
    add_transaction(db_session, user, TransactionType.INCOME, "250.50", category="Freelance")
    add_transaction(db_session, user, TransactionType.EXPENSE, "300.25")

    summary = aggregation.transaction_summary(db_session, user.id)

    assert summary.income.total == Decimal("1250.50")
    assert summary.income.count == 2
    assert summary.expense.total == Decimal("300.25")
    assert summary.expense.count == 1
    assert summary.net_income == summary.income.total - summary.expense.total


def test_transaction_summary_missing_groups_are_zero(db_session, user):
    add_transaction(db_session, user, TransactionType.EXPENSE, "40.00")

    summary = aggregation.transaction_summary(db_session, user.id)

    assert summary.income.total == Decimal("0")
    assert summary.income.count == 0
    assert summary.net_income == Decimal("-40.00")


def test_transaction_summary_date_range_needs_both_ends(db_session, user):
    add_transaction(db_session, user, TransactionType.EXPENSE, "10.00", on=date(2024, 1, 2))
    add_transaction(db_session, user, TransactionType.EXPENSE, "20.00", on=date(2024, 1, 10))

    ranged = aggregation.transaction_summary(db_session, user.id, date(2024, 1, 5), date(2024, 1, 10))
    open_ended = aggregation.transaction_summary(db_session, user.id, date(2024, 1, 5), None)

    assert ranged.expense.total == Decimal("20.00")
    assert open_ended.expense.total == Decimal("30.00")


def test_transaction_summary_is_owner_scoped(db_session, user, stranger):
    add_transaction(db_session, stranger, TransactionType.INCOME, "999.00")

    summary = aggregation.transaction_summary(db_session, user.id)

    assert summary.income.count == 0


# ===== CATEGORY BREAKDOWN =====

def test_category_breakdown_top_ten_sorted(db_session, user):
    for i in range(12):
        add_transaction(db_session, user, TransactionType.EXPENSE, f"{(i + 1) * 10}.00", category=f"Cat{i:02d}")
    add_transaction(db_session, user, TransactionType.INCOME, "5000.00", category="Salary")

    breakdown = aggregation.category_breakdown(db_session, user.id)

    assert len(breakdown) == 10
    totals = [entry.total for entry in breakdown]
    assert totals == sorted(totals, reverse=True)
    assert breakdown[0].category == "Cat11"
    assert all(entry.category != "Salary" for entry in breakdown)


def test_category_breakdown_ties_keep_first_appearance(db_session, user):
    add_transaction(db_session, user, TransactionType.EXPENSE, "50.00", category="Travel")
    add_transaction(db_session, user, TransactionType.EXPENSE, "50.00", category="Books")
    add_transaction(db_session, user, TransactionType.EXPENSE, "25.00", category="Games")
    add_transaction(db_session, user, TransactionType.EXPENSE, "25.00", category="Games")

    breakdown = aggregation.category_breakdown(db_session, user.id)

    assert [entry.category for entry in breakdown] == ["Travel", "Books", "Games"]
    assert breakdown[2].count == 2


# ===== MONTHLY TRENDS =====

def test_monthly_trends_with_only_current_month(db_session, user):
    add_transaction(db_session, user, TransactionType.INCOME, "500.00", category="Salary", on=date(2024, 1, 3))
    add_transaction(db_session, user, TransactionType.EXPENSE, "200.00", on=date(2024, 1, 10))

    trends = aggregation.monthly_trends(db_session, user.id, 3, TODAY)

    assert [(t.year, t.month) for t in trends] == [(2023, 11), (2023, 12), (2024, 1)]
    for empty in trends[:2]:
        assert empty.income == 0 and empty.expenses == 0 and empty.net_income == 0
    assert trends[-1].income == Decimal("500.00")
    assert trends[-1].expenses == Decimal("200.00")
    assert trends[-1].net_income == Decimal("300.00")


def test_monthly_trends_ignores_older_months(db_session, user):
    add_transaction(db_session, user, TransactionType.EXPENSE, "70.00", on=date(2023, 10, 31))
    add_transaction(db_session, user, TransactionType.EXPENSE, "30.00", on=date(2023, 11, 1))

    trends = aggregation.monthly_trends(db_session, user.id, 3, TODAY)

    assert trends[0].month_start == date(2023, 11, 1)
    assert trends[0].expenses == Decimal("30.00")


# ===== BUDGET PERFORMANCE =====

@pytest.fixture
def food_budget(db_session, user):
    budget = BudgetDB(
        user_id=user.id,
        name="Groceries",
        category="Food",
        amount=Decimal("100.00"),
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
        alert_thresholds=[{"percentage": 80, "is_enabled": True}, {"percentage": 150, "is_enabled": True}],
        tags=[],
    )
    db_session.add(budget)
    db_session.commit()
    return budget


def test_budget_performance_over_budget(db_session, user, food_budget):
    add_transaction(db_session, user, TransactionType.EXPENSE, "70.00", on=date(2024, 1, 5))
    add_transaction(db_session, user, TransactionType.EXPENSE, "50.00", on=date(2024, 1, 20))
    # Outside the window, another category, and income are all ignored
    add_transaction(db_session, user, TransactionType.EXPENSE, "500.00", on=date(2024, 2, 1))
    add_transaction(db_session, user, TransactionType.EXPENSE, "500.00", category="Rent", on=date(2024, 1, 5))
    add_transaction(db_session, user, TransactionType.INCOME, "500.00", on=date(2024, 1, 5))

    performance = aggregation.budget_performance(db_session, food_budget.id, user.id, TODAY)

    assert performance.total_spent == Decimal("120.00")
    assert performance.remaining == Decimal("-20.00")
    assert performance.percentage == 100
    assert performance.actual_percentage == 120
    assert performance.is_over_budget is True
    assert performance.transactions == 2
    assert performance.triggered_alerts == [80.0]
    assert performance.budget.status == "active"


def test_budget_performance_is_owner_scoped(db_session, food_budget, stranger):
    with pytest.raises(NotFoundError):
        aggregation.budget_performance(db_session, food_budget.id, stranger.id, TODAY)


# ===== GOAL STATS =====

def test_goal_stats(db_session, user):
    db_session.add_all([
        GoalDB(user_id=user.id, name="Car", target_amount=Decimal("1000"), current_amount=Decimal("250"),
               target_date=TODAY + timedelta(days=100), is_active=True, is_completed=False, tags=[]),
        GoalDB(user_id=user.id, name="Trip", target_amount=Decimal("500"), current_amount=Decimal("500"),
               target_date=TODAY + timedelta(days=10), is_active=True, is_completed=True, tags=[]),
        GoalDB(user_id=user.id, name="Laptop", target_amount=Decimal("500"), current_amount=Decimal("0"),
               target_date=TODAY - timedelta(days=1), is_active=True, is_completed=False, tags=[]),
    ])
    db_session.commit()

    stats = aggregation.goal_stats(db_session, user.id, TODAY)

    assert stats.total == 3
    assert stats.active == 2
    assert stats.completed == 1
    assert stats.overdue == 1
    assert stats.total_target_amount == Decimal("2000")
    assert stats.total_current_amount == Decimal("750")
    assert stats.overall_progress == 37.5


def test_goal_stats_without_goals(db_session, user):
    stats = aggregation.goal_stats(db_session, user.id, TODAY)

    assert stats.total == 0
    assert stats.overall_progress == 0
