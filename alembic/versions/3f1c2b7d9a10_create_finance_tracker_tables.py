"""create users, transactions, budgets and goals tables

Revision ID: 3f1c2b7d9a10
Revises:
Create Date: 2026-10-19 10:12:41.512093

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2b7d9a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum columns store member names
transaction_type = sa.Enum('INCOME', 'EXPENSE', name='transactiontype')
payment_method = sa.Enum('CASH', 'CREDIT_CARD', 'DEBIT_CARD', 'BANK_TRANSFER', 'DIGITAL_WALLET', 'CHECK', 'OTHER',
                         name='paymentmethod')
budget_period = sa.Enum('WEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY', name='budgetperiod')
goal_type = sa.Enum('SAVINGS', 'DEBT_PAYMENT', 'INVESTMENT', 'PURCHASE', 'EMERGENCY_FUND', 'OTHER', name='goaltype')
goal_priority = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'URGENT', name='goalpriority')
contribution_source = sa.Enum('MANUAL', 'AUTOMATIC', 'TRANSFER', name='contributionsource')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=True),
        sa.Column('preferences', sa.JSON, nullable=True),
        sa.Column('last_login_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('email', name='uq_user_email'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('description', sa.String(200), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('subcategory', sa.String(50), nullable=True),
        sa.Column('transaction_date', sa.Date, nullable=False),
        sa.Column('payment_method', payment_method, nullable=True),
        sa.Column('tags', sa.JSON, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('is_recurring', sa.Boolean, nullable=True),
        sa.Column('recurring_pattern', sa.JSON, nullable=True),
        sa.Column('is_verified', sa.Boolean, nullable=True),
        sa.Column('verified_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])
    op.create_index('idx_transactions_user_type', 'transactions', ['user_id', 'type'])
    op.create_index('idx_transactions_user_category', 'transactions', ['user_id', 'category'])

    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('period', budget_period, nullable=True),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=True),
        sa.Column('alert_thresholds', sa.JSON, nullable=True),
        sa.Column('tags', sa.JSON, nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_budgets_user_active', 'budgets', ['user_id', 'is_active'])
    op.create_index('idx_budgets_user_category', 'budgets', ['user_id', 'category'])
    op.create_index('idx_budgets_user_window', 'budgets', ['user_id', 'start_date', 'end_date'])

    op.create_table(
        'goals',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('type', goal_type, nullable=True),
        sa.Column('target_amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('current_amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('target_date', sa.Date, nullable=False),
        sa.Column('start_date', sa.Date, nullable=True),
        sa.Column('priority', goal_priority, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=True),
        sa.Column('is_completed', sa.Boolean, nullable=True),
        sa.Column('completed_at', sa.DateTime, nullable=True),
        sa.Column('color', sa.String(7), nullable=True),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('tags', sa.JSON, nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_goals_user_active', 'goals', ['user_id', 'is_active'])
    op.create_index('idx_goals_user_type', 'goals', ['user_id', 'type'])
    op.create_index('idx_goals_user_target_date', 'goals', ['user_id', 'target_date'])
    op.create_index('idx_goals_user_completed', 'goals', ['user_id', 'is_completed'])

    op.create_table(
        'goal_milestones',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('goal_id', sa.Integer, sa.ForeignKey('goals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('target_amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('is_completed', sa.Boolean, nullable=True),
        sa.Column('completed_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('goal_id', 'position', name='uq_goal_milestone_position'),
    )

    op.create_table(
        'goal_contributions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('goal_id', sa.Integer, sa.ForeignKey('goals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('date', sa.DateTime, nullable=True),
        sa.Column('description', sa.String(200), nullable=True),
        sa.Column('source', contribution_source, nullable=True),
    )
    op.create_index('idx_goal_contributions_goal', 'goal_contributions', ['goal_id'])


def downgrade() -> None:
    op.drop_index('idx_goal_contributions_goal', table_name='goal_contributions')
    op.drop_table('goal_contributions')
    op.drop_table('goal_milestones')
    op.drop_index('idx_goals_user_completed', table_name='goals')
    op.drop_index('idx_goals_user_target_date', table_name='goals')
    op.drop_index('idx_goals_user_type', table_name='goals')
    op.drop_index('idx_goals_user_active', table_name='goals')
    op.drop_table('goals')
    op.drop_index('idx_budgets_user_window', table_name='budgets')
    op.drop_index('idx_budgets_user_category', table_name='budgets')
    op.drop_index('idx_budgets_user_active', table_name='budgets')
    op.drop_table('budgets')
    op.drop_index('idx_transactions_user_category', table_name='transactions')
    op.drop_index('idx_transactions_user_type', table_name='transactions')
    op.drop_index('idx_transactions_user_date', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (contribution_source, goal_priority, goal_type, budget_period, payment_method, transaction_type):
        enum_type.drop(bind, checkfirst=True)
