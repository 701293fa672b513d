import sys
import os
import random
from sqlalchemy.orm import Session
from datetime import date, datetime, timedelta
from decimal import Decimal
from faker import Faker

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from finance_tracker.db.core import (
    Base,
    engine,
    session_local,
    UserDB,
    TransactionDB,
    BudgetDB,
    GoalDB,
    GoalMilestoneDB,
    GoalContributionDB,
    TransactionType,
    PaymentMethod,
    BudgetPeriod,
    GoalType,
    GoalPriority,
    ContributionSource,
)
from finance_tracker.crud.crud_user import hash_password
from finance_tracker.services.derivation import enforce_goal_completion

fake = Faker()

SEED_PASSWORD = "Password123"
NUM_USERS = 3

EXPENSE_CATEGORIES = {
    "Food": ["Groceries", "Restaurants", "Coffee Shops"],
    "Housing": ["Rent", "Utilities", "Home Repair"],
    "Transportation": ["Gas", "Public Transit", "Ride Share"],
    "Entertainment": ["Movies", "Streaming Services", "Hobbies"],
    "Shopping": ["Clothing", "Electronics", "Home Goods"],
    "Health": ["Pharmacy", "Gym", "Doctor"],
}
INCOME_CATEGORIES = {
    "Salary": ["Paycheck", "Bonus"],
    "Freelance": ["Consulting", "Design"],
    "Investments": ["Dividends", "Interest"],
}


def money(low: float, high: float) -> Decimal:
    return Decimal(str(round(random.uniform(low, high), 2)))


def seed_database():
    """
    Fills the database with sample users, six months of transactions, budgets and goals.
    """
    Base.metadata.create_all(bind=engine)
    db: Session = session_local()
    today = date.today()

    try:
        # Check if data exists to prevent duplicate seeding
        if db.query(UserDB).count() > 0:
            print("Database appears to be already seeded. Exiting.")
            return

        print("Seeding database with sample data...")

        for i in range(NUM_USERS):
            # 1. Create User
            user = UserDB(
                name=fake.name()[:50],
                email=f"user{i + 1}@example.com",
                password_hash=hash_password(SEED_PASSWORD),
                is_active=True,
                preferences={
                    "currency": random.choice(["USD", "EUR", "GBP"]),
                    "date_format": random.choice(["MM/DD/YYYY", "YYYY-MM-DD"]),
                },
                created_at=datetime.utcnow(),
                updated_at=datetime.utcnow(),
            )
            db.add(user)
            db.flush()
            print(f"Created user {user.email} (password: {SEED_PASSWORD})")

            # 2. Create Transactions across the last six months
            print("Creating transactions...")
            for month_offset in range(6):
                month_day = today - timedelta(days=30 * month_offset)

                for category, subcategories in INCOME_CATEGORIES.items():
                    if category != "Salary" and random.random() < 0.5:
                        continue
                    db.add(TransactionDB(
                        user_id=user.id,
                        type=TransactionType.INCOME,
                        amount=money(3000, 6000) if category == "Salary" else money(100, 900),
                        description=f"{random.choice(subcategories)} from {fake.company()}"[:200],
                        category=category,
                        subcategory=random.choice(subcategories),
                        transaction_date=month_day.replace(day=1),
                        payment_method=PaymentMethod.BANK_TRANSFER,
                        tags=["income"],
                        is_verified=True,
                        verified_at=datetime.utcnow(),
                    ))

                for _ in range(random.randint(12, 25)):
                    category = random.choice(list(EXPENSE_CATEGORIES.keys()))
                    subcategory = random.choice(EXPENSE_CATEGORIES[category])
                    txn_date = month_day.replace(day=random.randint(1, 28))
                    if txn_date > today:
                        txn_date = today
                    db.add(TransactionDB(
                        user_id=user.id,
                        type=TransactionType.EXPENSE,
                        amount=money(5, 250),
                        description=f"{subcategory} at {fake.company()}"[:200],
                        category=category,
                        subcategory=subcategory,
                        transaction_date=txn_date,
                        payment_method=random.choice(list(PaymentMethod)),
                        tags=random.sample(["essential", "weekend", "family", "work"], k=random.randint(0, 2)),
                        notes=fake.sentence() if random.random() < 0.2 else None,
                    ))

            # A recurring rent payment
            db.add(TransactionDB(
                user_id=user.id,
                type=TransactionType.EXPENSE,
                amount=money(900, 1800),
                description="Monthly rent",
                category="Housing",
                subcategory="Rent",
                transaction_date=today.replace(day=1),
                payment_method=PaymentMethod.BANK_TRANSFER,
                tags=["essential"],
                is_recurring=True,
                recurring_pattern={
                    "frequency": "monthly",
                    "interval": 1,
                    "end_date": None,
                    "next_due_date": today.replace(day=1).isoformat(),
                },
            ))

            # 3. Create Budgets for the current month
            print("Creating budgets...")
            month_start = today.replace(day=1)
            month_end = (month_start + timedelta(days=32)).replace(day=1) - timedelta(days=1)
            for category in random.sample(list(EXPENSE_CATEGORIES.keys()), k=3):
                db.add(BudgetDB(
                    user_id=user.id,
                    name=f"{category} budget",
                    category=category,
                    amount=money(300, 1200),
                    period=BudgetPeriod.MONTHLY,
                    start_date=month_start,
                    end_date=month_end,
                    is_active=True,
                    alert_thresholds=[
                        {"percentage": 80, "is_enabled": True},
                        {"percentage": 100, "is_enabled": True},
                    ],
                    tags=[],
                ))

            # 4. Create Goals with milestones and contributions
            print("Creating goals...")
            for goal_type in random.sample(list(GoalType), k=3):
                target = money(1000, 20000).quantize(Decimal("1"))
                goal = GoalDB(
                    user_id=user.id,
                    name=f"{goal_type.value.replace('_', ' ').title()} goal",
                    description=fake.sentence(),
                    type=goal_type,
                    target_amount=target,
                    current_amount=Decimal("0.00"),
                    is_completed=False,
                    target_date=today + timedelta(days=random.randint(60, 720)),
                    start_date=today - timedelta(days=random.randint(0, 120)),
                    priority=random.choice(list(GoalPriority)),
                    tags=[],
                    milestones=[
                        GoalMilestoneDB(position=position, name=f"{share}% saved",
                                        target_amount=(target * share / 100).quantize(Decimal("0.01")), is_completed=False)
                        for position, share in enumerate((25, 50, 75))
                    ],
                )

                for _ in range(random.randint(0, 5)):
                    amount = money(50, 800)
                    goal.current_amount += amount
                    goal.contributions.append(GoalContributionDB(
                        amount=amount,
                        date=datetime.utcnow() - timedelta(days=random.randint(0, 90)),
                        description="Savings transfer",
                        source=random.choice(list(ContributionSource)),
                    ))

                enforce_goal_completion(goal)
                db.add(goal)

            db.commit()
            print(f"User {i + 1} and associated data seeded.")

        print("Successfully seeded database.")

    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
