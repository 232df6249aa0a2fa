import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint

from app.database import Base


class ReconciliationLink(Base):
    __tablename__ = "reconciliation_links"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Integer, nullable=False, index=True)

    bank_transaction_id = Column(
        String,
        ForeignKey("bank_transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    expense_id = Column(
        String,
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    invoice_id = Column(
        String,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    # portion of |transaction.amount| attributed to this item
    amount_matched = Column(Numeric(12, 2), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "(expense_id IS NOT NULL AND invoice_id IS NULL) OR "
            "(expense_id IS NULL AND invoice_id IS NOT NULL)",
            name="ck_reconciliation_links_expense_or_invoice",
        ),
        UniqueConstraint("bank_transaction_id", "expense_id", name="uq_reconciliation_links_tx_expense"),
        UniqueConstraint("bank_transaction_id", "invoice_id", name="uq_reconciliation_links_tx_invoice"),
    )
