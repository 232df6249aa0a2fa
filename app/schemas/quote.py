from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LineItem(BaseModel):
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    # computed by the editor; the totals engine takes it as given
    total_price: Optional[float] = None
    is_heading: bool = False


class LabourItem(BaseModel):
    description: Optional[str] = None
    hours: Optional[float] = None
    rate: Optional[float] = None


class QuoteSection(BaseModel):
    title: Optional[str] = None
    items: List[LineItem] = Field(default_factory=list)
    labour_items: Optional[List[LabourItem]] = None
    labour_hours: Optional[float] = None
    labour_rate: Optional[float] = None
    labour_cost: Optional[float] = None
    subsection_price: Optional[float] = None


class PartPayment(BaseModel):
    enabled: bool = False
    type: Optional[str] = None
    value: Optional[float] = None
    label: Optional[str] = None


class QuoteDocument(BaseModel):
    """Everything the totals engine reads from a quote or invoice."""

    sections: List[QuoteSection] = Field(default_factory=list)
    labour_rate: Optional[float] = None
    markup_percent: Optional[float] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    tax_percent: Optional[float] = None
    cis_percent: Optional[float] = None
    part_payment: PartPayment = Field(default_factory=PartPayment)


class QuoteCalculateRequest(QuoteDocument):
    show_vat: bool = True
    show_cis: bool = False


class QuoteCreate(QuoteCalculateRequest):
    type: str = Field(default="quote", pattern="^(quote|invoice)$")
    status: str = Field(default="draft", pattern="^(draft|sent|accepted|declined|paid)$")
    title: Optional[str] = None
    customer_name: Optional[str] = None
    discount_description: Optional[str] = None


class TotalsResponse(BaseModel):
    materials_total: float
    labour_total: float
    sections_total: float
    client_subtotal: float
    discount_amount: float
    after_discount: float
    tax_amount: float
    cis_amount: float
    grand_total: float
    part_payment_amount: float
    balance_due: float


class QuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    company_id: int
    reference_number: int
    type: str
    status: str
    title: Optional[str]
    customer_name: Optional[str]
    sections: List[QuoteSection]
    labour_rate: Optional[float]
    markup_percent: Optional[float]
    discount_type: Optional[str]
    discount_value: Optional[float]
    discount_description: Optional[str]
    tax_percent: Optional[float]
    cis_percent: Optional[float]
    part_payment_enabled: bool
    part_payment_type: Optional[str]
    part_payment_value: Optional[float]
    part_payment_label: Optional[str]
    show_vat: bool
    show_cis: bool
    subtotal: Optional[float]
    vat: Optional[float]
    total: Optional[float]
    created_at: datetime
    updated_at: datetime
