import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String

from app.database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Integer, nullable=False, index=True)

    vendor = Column(String, nullable=False)
    category = Column(String, nullable=True)
    description = Column(String, nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    vat_amount = Column(Numeric(12, 2), nullable=True)
    expense_date = Column(Date, nullable=False, index=True)

    is_reconciled = Column(Boolean, nullable=False, default=False)
    reconciled_transaction_id = Column(
        String,
        ForeignKey("bank_transactions.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
