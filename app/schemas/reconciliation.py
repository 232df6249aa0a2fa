from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.bank_transaction import BankTransactionResponse
from app.schemas.expense import ExpenseResponse


class SuggestedInvoice(BaseModel):
    id: str
    reference_number: int
    customer_name: Optional[str]
    total: Optional[float]


class SuggestedMatchResponse(BaseModel):
    transaction: BankTransactionResponse
    expense: Optional[ExpenseResponse] = None
    invoice: Optional[SuggestedInvoice] = None
    confidence: str
    reason: str


class AcceptMatchRequest(BaseModel):
    expense_id: Optional[str] = None
    invoice_id: Optional[str] = None


class ReconcileMultiRequest(BaseModel):
    expense_ids: List[str] = Field(default_factory=list)
    invoice_ids: List[str] = Field(default_factory=list)


class ReconcileResult(BaseModel):
    transaction_id: str
    is_reconciled: bool
    link_count: Optional[int] = None
    links_removed: Optional[int] = None


class ReconciliationSummary(BaseModel):
    transaction_id: str
    transaction_date: str
    description: Optional[str]
    transaction_amount: float
    is_reconciled: bool
    total_matched: float
    unmatched_amount: float
    link_count: int
    linked_items: List[str]


class ReconciliationStats(BaseModel):
    total: int
    reconciled: int
    pending: int
    suggested_count: int
