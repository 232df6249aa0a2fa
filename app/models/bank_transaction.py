import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String

from app.database import Base


class BankTransaction(Base):
    __tablename__ = "bank_transactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Integer, nullable=False, index=True)

    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)  # negative = money out

    is_reconciled = Column(Boolean, nullable=False, default=False, index=True)

    # single-link fields kept for older clients; reconciliation_links is authoritative
    reconciled_expense_id = Column(String, nullable=True)
    reconciled_invoice_id = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
