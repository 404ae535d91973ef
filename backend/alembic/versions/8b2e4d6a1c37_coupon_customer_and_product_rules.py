"""Coupon per-customer and product restrictions

Revision ID: 8b2e4d6a1c37
Revises: 3f1c9a2b7d10
Create Date: 2026-10-19 16:40:05.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers used by Alembic
revision: str = '8b2e4d6a1c37'
down_revision: Union[str, Sequence[str], None] = '3f1c9a2b7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    with op.batch_alter_table('coupons') as batch_op:
        batch_op.add_column(sa.Column('usage_limit_per_user', sa.Integer(), nullable=True))
        batch_op.add_column(
            sa.Column('first_time_customers_only', sa.Boolean(), nullable=False, server_default=sa.false())
        )
        batch_op.add_column(sa.Column('applicable_products', sa.JSON(), nullable=True))
        batch_op.add_column(sa.Column('excluded_products', sa.JSON(), nullable=True))


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('coupons') as batch_op:
        batch_op.drop_column('excluded_products')
        batch_op.drop_column('applicable_products')
        batch_op.drop_column('first_time_customers_only')
        batch_op.drop_column('usage_limit_per_user')
