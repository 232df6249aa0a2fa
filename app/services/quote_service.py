from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import AccessDeniedError, NotFoundError
from app.database import SessionLocal
from app.models.quote import Quote
from app.schemas.quote import PartPayment, QuoteCreate, QuoteDocument, QuoteSection
from app.services import settings_service, subscription_service
from app.services.subscription_service import AccessDeniedReason, SubscriptionTier
from app.services.totals_engine import DisplayOptions, QuoteTotals, calculate_quote_totals

logger = logging.getLogger(__name__)


def _opt_float(value) -> Optional[float]:
    return None if value is None else float(value)


def document_from_quote(quote: Quote) -> QuoteDocument:
    return QuoteDocument(
        sections=[QuoteSection.model_validate(s) for s in (quote.sections or [])],
        labour_rate=_opt_float(quote.labour_rate),
        markup_percent=_opt_float(quote.markup_percent),
        discount_type=quote.discount_type,
        discount_value=_opt_float(quote.discount_value),
        tax_percent=_opt_float(quote.tax_percent),
        cis_percent=_opt_float(quote.cis_percent),
        part_payment=PartPayment(
            enabled=bool(quote.part_payment_enabled),
            type=quote.part_payment_type,
            value=_opt_float(quote.part_payment_value),
            label=quote.part_payment_label,
        ),
    )


def display_options_for(quote: Quote) -> DisplayOptions:
    return DisplayOptions(show_vat=bool(quote.show_vat), show_cis=bool(quote.show_cis))


def totals_for_quote(db: Session, quote: Quote) -> QuoteTotals:
    options = settings_service.calculation_options(settings_service.get_settings(db, quote.company_id))
    return calculate_quote_totals(document_from_quote(quote), options, display_options_for(quote))


def _apply_payload(quote: Quote, payload: QuoteCreate) -> None:
    quote.type = payload.type
    quote.status = payload.status
    quote.title = payload.title
    quote.customer_name = payload.customer_name
    quote.sections = [s.model_dump() for s in payload.sections]
    quote.labour_rate = payload.labour_rate
    quote.markup_percent = payload.markup_percent
    quote.discount_type = payload.discount_type
    quote.discount_value = payload.discount_value
    quote.discount_description = payload.discount_description
    quote.tax_percent = payload.tax_percent
    quote.cis_percent = payload.cis_percent
    quote.part_payment_enabled = payload.part_payment.enabled
    quote.part_payment_type = payload.part_payment.type
    quote.part_payment_value = payload.part_payment.value
    quote.part_payment_label = payload.part_payment.label
    quote.show_vat = payload.show_vat
    quote.show_cis = payload.show_cis


def _store_snapshot(db: Session, quote: Quote) -> None:
    totals = totals_for_quote(db, quote)
    quote.subtotal = round(totals.after_discount, 2)
    quote.vat = round(totals.tax_amount, 2)
    quote.total = round(totals.grand_total, 2)


def _next_reference_number(db: Session, company_id: int) -> int:
    current = (
        db.query(func.coalesce(func.max(Quote.reference_number), 0))
        .filter(Quote.company_id == int(company_id))
        .scalar()
    )
    return int(current or 0) + 1


def get_quote(db: Session, company_id: int, quote_id: str) -> Quote:
    row = (
        db.query(Quote)
        .filter(Quote.id == str(quote_id), Quote.company_id == int(company_id))
        .first()
    )
    if row is None:
        raise NotFoundError("Quote", quote_id)
    return row


def list_quotes(
    db: Session,
    company_id: int,
    *,
    quote_type: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Quote]:
    q = db.query(Quote).filter(Quote.company_id == int(company_id))
    if quote_type is not None:
        q = q.filter(Quote.type == str(quote_type))
    if status is not None:
        q = q.filter(Quote.status == str(status))
    return q.order_by(Quote.reference_number.desc()).all()


def list_paid_invoices(db: Session, company_id: int) -> List[Quote]:
    return list_quotes(db, company_id, quote_type="invoice", status="paid")


def _check_usage(db: Session, company_id: int, quote_type: str) -> None:
    """Plan limits count quotes and invoices separately."""
    resource = "invoices" if quote_type == "invoice" else "quotes"
    current = (
        db.query(func.count(Quote.id))
        .filter(Quote.company_id == int(company_id), Quote.type == quote_type)
        .scalar()
    )
    settings = settings_service.get_settings(db, company_id)
    usage = subscription_service.usage_limit(settings, resource, int(current or 0))
    if not usage.allowed:
        plan = subscription_service.TIER_NAMES[SubscriptionTier(settings.subscription_tier)]
        raise AccessDeniedError(
            AccessDeniedReason.LIMIT_REACHED.value,
            f"The {plan} plan allows {usage.limit} {resource}",
        )


def create_quote(company_id: int, payload: QuoteCreate, *, db: Optional[Session] = None) -> Quote:
    """
    If db is provided, this function will NOT commit/close. Caller owns the transaction.
    If db is None, this function manages its own session + commit.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        _check_usage(db, company_id, payload.type)
        quote = Quote(
            company_id=int(company_id),
            reference_number=_next_reference_number(db, company_id),
        )
        _apply_payload(quote, payload)
        _store_snapshot(db, quote)

        db.add(quote)
        db.flush()
        db.refresh(quote)

        if owns_db:
            db.commit()

        logger.info(
            "Quote created",
            extra={"company_id": int(company_id), "quote_id": quote.id, "quote_type": quote.type},
        )
        return quote
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def update_quote(company_id: int, quote_id: str, payload: QuoteCreate, *, db: Optional[Session] = None) -> Quote:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        quote = get_quote(db, company_id, quote_id)
        if payload.type != quote.type:
            _check_usage(db, company_id, payload.type)
        _apply_payload(quote, payload)
        _store_snapshot(db, quote)
        quote.updated_at = datetime.utcnow()

        db.flush()
        db.refresh(quote)

        if owns_db:
            db.commit()
        return quote
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def set_quote_state(
    company_id: int,
    quote_id: str,
    *,
    quote_type: Optional[str] = None,
    status: Optional[str] = None,
    db: Optional[Session] = None,
) -> Quote:
    """Convert a quote to an invoice and/or move its status (e.g. to 'paid')."""
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        quote = get_quote(db, company_id, quote_id)
        if status == "paid" and (quote_type or quote.type) != "invoice":
            raise ValueError("Only invoices can be marked paid")
        if quote_type is not None and quote_type != quote.type:
            _check_usage(db, company_id, quote_type)

        if quote_type is not None:
            quote.type = quote_type
        if status is not None:
            quote.status = status
        quote.updated_at = datetime.utcnow()

        db.flush()
        db.refresh(quote)

        if owns_db:
            db.commit()
        return quote
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def delete_quote(company_id: int, quote_id: str, *, db: Optional[Session] = None) -> None:
    # reconciliation_links rows go with it via ON DELETE CASCADE
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        quote = get_quote(db, company_id, quote_id)
        db.delete(quote)
        db.flush()

        if owns_db:
            db.commit()
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()
