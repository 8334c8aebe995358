"""Create users, budgets and expenses

Revision ID: 4f1c2a9d7e01
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '4f1c2a9d7e01'
down_revision = None
branch_labels = None
depends_on = None

user_status = sa.Enum('ACTIVE', 'INACTIVE', name='userstatus')
expense_category = sa.Enum('leisure', 'essentials', 'savings', name='expense_category')


def money_column(name, **kwargs):
    return sa.Column(name, sa.Numeric(precision=12, scale=2), nullable=False, **kwargs)


def upgrade():
    op.create_table(
        'users',
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('status', user_status, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # One budget per user and calendar month
    op.create_table(
        'budgets',
        sa.Column('budget_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        money_column('total_income'),
        money_column('leisure_budget'),
        money_column('essentials_budget'),
        money_column('savings_budget'),
        money_column('leisure_spent'),
        money_column('essentials_spent'),
        money_column('savings_spent'),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('budget_id'),
        sa.UniqueConstraint('user_id', 'year', 'month', name='uq_budgets_user_month')
    )
    op.create_index('ix_budgets_user_id', 'budgets', ['user_id'])

    op.create_table(
        'expenses',
        sa.Column('expense_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('budget_id', sa.Uuid(), nullable=False),
        sa.Column('category', expense_category, nullable=False),
        money_column('amount'),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('expense_date', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['budget_id'], ['budgets.budget_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('expense_id')
    )
    op.create_index('ix_expenses_user_id', 'expenses', ['user_id'])
    op.create_index('ix_expenses_budget_id', 'expenses', ['budget_id'])


def downgrade():
    op.drop_index('ix_expenses_budget_id', table_name='expenses')
    op.drop_index('ix_expenses_user_id', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('ix_budgets_user_id', table_name='budgets')
    op.drop_table('budgets')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    expense_category.drop(op.get_bind(), checkfirst=True)
    user_status.drop(op.get_bind(), checkfirst=True)
