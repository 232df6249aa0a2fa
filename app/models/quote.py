import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String

from app.database import Base


class Quote(Base):
    """Quote or invoice document. Invoices are quotes with type='invoice'."""

    __tablename__ = "quotes"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(Integer, nullable=False, index=True)
    reference_number = Column(Integer, nullable=False)

    type = Column(String, nullable=False, default="quote", index=True)  # quote|invoice
    status = Column(String, nullable=False, default="draft", index=True)  # draft|sent|accepted|declined|paid
    title = Column(String, nullable=True)
    customer_name = Column(String, nullable=True)

    sections = Column(JSON, nullable=False, default=list)

    labour_rate = Column(Numeric(12, 2), nullable=True)
    markup_percent = Column(Numeric(6, 2), nullable=True)
    discount_type = Column(String, nullable=True)
    discount_value = Column(Numeric(12, 2), nullable=True)
    discount_description = Column(String, nullable=True)
    tax_percent = Column(Numeric(6, 2), nullable=True)
    cis_percent = Column(Numeric(6, 2), nullable=True)

    part_payment_enabled = Column(Boolean, nullable=False, default=False)
    part_payment_type = Column(String, nullable=True)
    part_payment_value = Column(Numeric(12, 2), nullable=True)
    part_payment_label = Column(String, nullable=True)

    show_vat = Column(Boolean, nullable=False, default=True)
    show_cis = Column(Boolean, nullable=False, default=False)

    # display snapshot; recomputed on every save
    subtotal = Column(Numeric(12, 2), nullable=True)
    vat = Column(Numeric(12, 2), nullable=True)
    total = Column(Numeric(12, 2), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("type IN ('quote', 'invoice')", name="ck_quotes_type"),
        CheckConstraint(
            "discount_type IS NULL OR discount_type IN ('percentage', 'fixed')",
            name="ck_quotes_discount_type",
        ),
        CheckConstraint(
            "part_payment_type IS NULL OR part_payment_type IN ('percentage', 'fixed')",
            name="ck_quotes_part_payment_type",
        ),
    )
