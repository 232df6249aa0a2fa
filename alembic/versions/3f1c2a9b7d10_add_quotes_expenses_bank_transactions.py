"""add quotes expenses bank transactions settings

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-01-10 09:12:41.203118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "business_settings",
        sa.Column("company_id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("enable_vat", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("enable_cis", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_vat_registered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("default_labour_rate", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("default_tax_percent", sa.Numeric(6, 2), nullable=False, server_default="20"),
        sa.Column("default_cis_percent", sa.Numeric(6, 2), nullable=False, server_default="20"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "quotes",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("reference_number", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default="quote"),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=True),
        sa.Column("sections", sa.JSON(), nullable=False),
        sa.Column("labour_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("markup_percent", sa.Numeric(6, 2), nullable=True),
        sa.Column("discount_type", sa.String(), nullable=True),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("discount_description", sa.String(), nullable=True),
        sa.Column("tax_percent", sa.Numeric(6, 2), nullable=True),
        sa.Column("cis_percent", sa.Numeric(6, 2), nullable=True),
        sa.Column("part_payment_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("part_payment_type", sa.String(), nullable=True),
        sa.Column("part_payment_value", sa.Numeric(12, 2), nullable=True),
        sa.Column("part_payment_label", sa.String(), nullable=True),
        sa.Column("show_vat", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("show_cis", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=True),
        sa.Column("vat", sa.Numeric(12, 2), nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("type IN ('quote', 'invoice')", name="ck_quotes_type"),
        sa.CheckConstraint(
            "discount_type IS NULL OR discount_type IN ('percentage', 'fixed')",
            name="ck_quotes_discount_type",
        ),
        sa.CheckConstraint(
            "part_payment_type IS NULL OR part_payment_type IN ('percentage', 'fixed')",
            name="ck_quotes_part_payment_type",
        ),
    )
    op.create_index("ix_quotes_company_id", "quotes", ["company_id"], unique=False)
    op.create_index("ix_quotes_type", "quotes", ["type"], unique=False)
    op.create_index("ix_quotes_status", "quotes", ["status"], unique=False)

    op.create_table(
        "bank_transactions",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_reconciled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reconciled_expense_id", sa.String(), nullable=True),
        sa.Column("reconciled_invoice_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_bank_transactions_company_id", "bank_transactions", ["company_id"], unique=False)
    op.create_index("ix_bank_transactions_transaction_date", "bank_transactions", ["transaction_date"], unique=False)
    op.create_index("ix_bank_transactions_is_reconciled", "bank_transactions", ["is_reconciled"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("vendor", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("vat_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("is_reconciled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reconciled_transaction_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["reconciled_transaction_id"],
            ["bank_transactions.id"],
            name="fk_expenses_reconciled_transaction_id",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_expenses_company_id", "expenses", ["company_id"], unique=False)
    op.create_index("ix_expenses_expense_date", "expenses", ["expense_date"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_expenses_expense_date", table_name="expenses")
    op.drop_index("ix_expenses_company_id", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_bank_transactions_is_reconciled", table_name="bank_transactions")
    op.drop_index("ix_bank_transactions_transaction_date", table_name="bank_transactions")
    op.drop_index("ix_bank_transactions_company_id", table_name="bank_transactions")
    op.drop_table("bank_transactions")

    op.drop_index("ix_quotes_status", table_name="quotes")
    op.drop_index("ix_quotes_type", table_name="quotes")
    op.drop_index("ix_quotes_company_id", table_name="quotes")
    op.drop_table("quotes")

    op.drop_table("business_settings")
