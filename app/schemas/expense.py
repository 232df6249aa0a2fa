from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ExpenseCreate(BaseModel):
    vendor: str
    amount: float
    expense_date: date
    vat_amount: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: int
    vendor: str
    category: Optional[str]
    description: Optional[str]
    amount: float
    vat_amount: Optional[float]
    expense_date: date
    is_reconciled: bool
    reconciled_transaction_id: Optional[str]
    created_at: datetime
