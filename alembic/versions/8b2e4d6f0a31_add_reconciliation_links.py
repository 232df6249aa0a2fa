"""add reconciliation links

Revision ID: 8b2e4d6f0a31
Revises: 3f1c2a9b7d10
Create Date: 2026-01-10 14:03:27.559104

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b2e4d6f0a31'
down_revision: Union[str, Sequence[str], None] = '3f1c2a9b7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "reconciliation_links",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("bank_transaction_id", sa.String(), nullable=False),
        sa.Column("expense_id", sa.String(), nullable=True),
        sa.Column("invoice_id", sa.String(), nullable=True),
        sa.Column("amount_matched", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["bank_transaction_id"],
            ["bank_transactions.id"],
            name="fk_reconciliation_links_bank_transaction_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["expense_id"],
            ["expenses.id"],
            name="fk_reconciliation_links_expense_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["invoice_id"],
            ["quotes.id"],
            name="fk_reconciliation_links_invoice_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "(expense_id IS NOT NULL AND invoice_id IS NULL) OR "
            "(expense_id IS NULL AND invoice_id IS NOT NULL)",
            name="ck_reconciliation_links_expense_or_invoice",
        ),
        sa.UniqueConstraint("bank_transaction_id", "expense_id", name="uq_reconciliation_links_tx_expense"),
        sa.UniqueConstraint("bank_transaction_id", "invoice_id", name="uq_reconciliation_links_tx_invoice"),
    )
    op.create_index("ix_reconciliation_links_company_id", "reconciliation_links", ["company_id"], unique=False)
    op.create_index(
        "ix_reconciliation_links_bank_transaction_id",
        "reconciliation_links",
        ["bank_transaction_id"],
        unique=False,
    )
    op.create_index("ix_reconciliation_links_expense_id", "reconciliation_links", ["expense_id"], unique=False)
    op.create_index("ix_reconciliation_links_invoice_id", "reconciliation_links", ["invoice_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_reconciliation_links_invoice_id", table_name="reconciliation_links")
    op.drop_index("ix_reconciliation_links_expense_id", table_name="reconciliation_links")
    op.drop_index("ix_reconciliation_links_bank_transaction_id", table_name="reconciliation_links")
    op.drop_index("ix_reconciliation_links_company_id", table_name="reconciliation_links")
    op.drop_table("reconciliation_links")
