from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BankTransactionCreate(BaseModel):
    transaction_date: date
    amount: float = Field(description="Negative for money out, positive for money in.")
    description: Optional[str] = None


class BankTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: int
    transaction_date: date
    description: Optional[str]
    amount: float
    is_reconciled: bool
    reconciled_expense_id: Optional[str]
    reconciled_invoice_id: Optional[str]
    created_at: datetime
