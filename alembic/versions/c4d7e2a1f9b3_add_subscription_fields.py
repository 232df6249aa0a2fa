"""add subscription fields to business settings

Revision ID: c4d7e2a1f9b3
Revises: 8b2e4d6f0a31
Create Date: 2026-01-17 10:42:05.118230

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c4d7e2a1f9b3'
down_revision: Union[str, Sequence[str], None] = '8b2e4d6f0a31'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    with op.batch_alter_table("business_settings") as batch_op:
        batch_op.add_column(
            sa.Column("subscription_tier", sa.String(length=20), nullable=False, server_default="free")
        )
        batch_op.add_column(
            sa.Column("subscription_status", sa.String(length=20), nullable=False, server_default="active")
        )
        batch_op.add_column(sa.Column("trial_end", sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column("subscription_period_end", sa.DateTime(), nullable=True))
        batch_op.add_column(sa.Column("usage_limits", sa.JSON(), nullable=True))

        batch_op.create_check_constraint(
            "ck_business_settings_subscription_tier",
            "subscription_tier IN ('free', 'professional', 'business')",
        )
        batch_op.create_check_constraint(
            "ck_business_settings_subscription_status",
            "subscription_status IN ('active', 'trialing', 'past_due', 'cancelled', 'expired')",
        )


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table("business_settings") as batch_op:
        batch_op.drop_constraint("ck_business_settings_subscription_status", type_="check")
        batch_op.drop_constraint("ck_business_settings_subscription_tier", type_="check")
        batch_op.drop_column("usage_limits")
        batch_op.drop_column("subscription_period_end")
        batch_op.drop_column("trial_end")
        batch_op.drop_column("subscription_status")
        batch_op.drop_column("subscription_tier")
