"""
Settlement persistence for bank reconciliation.

Every write here runs in a single session and commits once, so an
acceptance either lands completely (links, transaction flag, expense
flags) or not at all.

A transaction's is_reconciled flag is binary and follows its links: it is
set as soon as an operator accepts at least one link, even when the matched
amounts do not add up to the transaction amount, and dropped once the last
link is gone. reconciliation_summary() exposes the unmatched remainder for
callers that care.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.database import SessionLocal
from app.models.bank_transaction import BankTransaction
from app.models.expense import Expense
from app.models.quote import Quote
from app.models.reconciliation_link import ReconciliationLink
from app.services.quote_service import list_paid_invoices
from app.services.reconciliation_matcher import SuggestedMatch, suggest_matches

logger = logging.getLogger(__name__)


def _unique(ids: Optional[Iterable[str]]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in ids or []:
        seen.setdefault(str(value), None)
    return list(seen)


def get_transaction(db: Session, company_id: int, transaction_id: str) -> BankTransaction:
    row = (
        db.query(BankTransaction)
        .filter(BankTransaction.id == str(transaction_id), BankTransaction.company_id == int(company_id))
        .first()
    )
    if row is None:
        raise NotFoundError("Transaction", transaction_id)
    return row


def _get_expense(db: Session, company_id: int, expense_id: str) -> Expense:
    row = (
        db.query(Expense)
        .filter(Expense.id == str(expense_id), Expense.company_id == int(company_id))
        .first()
    )
    if row is None:
        raise NotFoundError("Expense", expense_id)
    return row


def _get_invoice(db: Session, company_id: int, invoice_id: str) -> Quote:
    row = (
        db.query(Quote)
        .filter(
            Quote.id == str(invoice_id),
            Quote.company_id == int(company_id),
            Quote.type == "invoice",
        )
        .first()
    )
    if row is None:
        raise NotFoundError("Invoice", invoice_id)
    return row


def links_for_transaction(db: Session, transaction_id: str) -> List[ReconciliationLink]:
    return (
        db.query(ReconciliationLink)
        .filter(ReconciliationLink.bank_transaction_id == str(transaction_id))
        .order_by(ReconciliationLink.created_at.asc(), ReconciliationLink.id.asc())
        .all()
    )


def release_expenses(db: Session, transaction_id: str, keep: Iterable[str] = ()) -> int:
    """Clear reconciled state on expenses tied to the transaction, except `keep`."""
    linked_ids = [
        row.expense_id
        for row in db.query(ReconciliationLink.expense_id)
        .filter(
            ReconciliationLink.bank_transaction_id == str(transaction_id),
            ReconciliationLink.expense_id.isnot(None),
        )
        .all()
    ]

    q = db.query(Expense).filter(
        or_(
            Expense.reconciled_transaction_id == str(transaction_id),
            Expense.id.in_(linked_ids),
        )
    )
    keep_ids = set(keep)
    released = 0
    for expense in q.all():
        if expense.id in keep_ids:
            continue
        expense.is_reconciled = False
        expense.reconciled_transaction_id = None
        released += 1
    return released


def linked_transaction_ids(
    db: Session,
    *,
    expense_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
) -> List[str]:
    q = db.query(ReconciliationLink.bank_transaction_id)
    if expense_id is not None:
        q = q.filter(ReconciliationLink.expense_id == str(expense_id))
    if invoice_id is not None:
        q = q.filter(ReconciliationLink.invoice_id == str(invoice_id))
    return _unique(row.bank_transaction_id for row in q.all())


def clear_unlinked_transactions(db: Session, transaction_ids: Iterable[str]) -> int:
    """
    Drop the reconciled flag from any of these transactions that no longer
    has a link, e.g. after the only linked expense or invoice was deleted.
    Caller owns the transaction.
    """
    cleared = 0
    for transaction_id in _unique(transaction_ids):
        remaining = (
            db.query(ReconciliationLink)
            .filter(ReconciliationLink.bank_transaction_id == transaction_id)
            .count()
        )
        if remaining:
            continue

        tx = db.get(BankTransaction, transaction_id)
        if tx is None or not tx.is_reconciled:
            continue
        tx.is_reconciled = False
        tx.reconciled_expense_id = None
        tx.reconciled_invoice_id = None
        cleared += 1
    return cleared


def _write_links(
    db: Session,
    tx: BankTransaction,
    expenses: List[Expense],
    invoices: List[Quote],
) -> List[ReconciliationLink]:
    release_expenses(db, tx.id, keep=[e.id for e in expenses])

    db.query(ReconciliationLink).filter(
        ReconciliationLink.bank_transaction_id == tx.id
    ).delete(synchronize_session=False)

    links: List[ReconciliationLink] = []
    for expense in expenses:
        links.append(
            ReconciliationLink(
                company_id=tx.company_id,
                bank_transaction_id=tx.id,
                expense_id=expense.id,
                amount_matched=expense.amount,
            )
        )
        expense.is_reconciled = True
        expense.reconciled_transaction_id = tx.id

    for invoice in invoices:
        links.append(
            ReconciliationLink(
                company_id=tx.company_id,
                bank_transaction_id=tx.id,
                invoice_id=invoice.id,
                amount_matched=invoice.total,
            )
        )

    db.add_all(links)
    tx.is_reconciled = bool(links)
    tx.reconciled_expense_id = None
    tx.reconciled_invoice_id = None
    return links


def reconcile_multi(
    *,
    company_id: int,
    transaction_id: str,
    expense_ids: Optional[Iterable[str]] = None,
    invoice_ids: Optional[Iterable[str]] = None,
    db: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Replace every link on the transaction with one link per expense and per
    invoice. amount_matched is the full expense amount / invoice total.
    Two empty lists leave the transaction unreconciled.

    Re-running with the same arguments yields the same end state.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        tx = get_transaction(db, company_id, transaction_id)
        expenses = [_get_expense(db, company_id, i) for i in _unique(expense_ids)]
        invoices = [_get_invoice(db, company_id, i) for i in _unique(invoice_ids)]

        links = _write_links(db, tx, expenses, invoices)
        db.flush()

        if owns_db:
            db.commit()

        logger.info(
            "Transaction reconciled",
            extra={
                "company_id": int(company_id),
                "transaction_id": tx.id,
                "expense_links": len(expenses),
                "invoice_links": len(invoices),
            },
        )
        return {
            "transaction_id": tx.id,
            "is_reconciled": bool(tx.is_reconciled),
            "link_count": len(links),
        }
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def accept_match(
    *,
    company_id: int,
    transaction_id: str,
    expense_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
    db: Optional[Session] = None,
) -> Dict[str, Any]:
    """Single-match acceptance: exactly one of expense_id / invoice_id."""
    if (expense_id is None) == (invoice_id is None):
        raise ValueError("Exactly one of expense_id or invoice_id is required")

    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        result = reconcile_multi(
            company_id=company_id,
            transaction_id=transaction_id,
            expense_ids=[expense_id] if expense_id is not None else [],
            invoice_ids=[invoice_id] if invoice_id is not None else [],
            db=db,
        )

        tx = get_transaction(db, company_id, transaction_id)
        tx.reconciled_expense_id = None if expense_id is None else str(expense_id)
        tx.reconciled_invoice_id = None if invoice_id is None else str(invoice_id)
        db.flush()

        if owns_db:
            db.commit()
        return result
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def unreconcile(
    *,
    company_id: int,
    transaction_id: str,
    db: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Drop all links and clear reconciled flags on the transaction and on every
    expense tied to it. Paid invoices stay paid.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        tx = get_transaction(db, company_id, transaction_id)

        released = release_expenses(db, tx.id)
        removed = (
            db.query(ReconciliationLink)
            .filter(ReconciliationLink.bank_transaction_id == tx.id)
            .delete(synchronize_session=False)
        )

        tx.is_reconciled = False
        tx.reconciled_expense_id = None
        tx.reconciled_invoice_id = None
        db.flush()

        if owns_db:
            db.commit()

        logger.info(
            "Transaction unreconciled",
            extra={
                "company_id": int(company_id),
                "transaction_id": tx.id,
                "links_removed": int(removed),
                "expenses_released": released,
            },
        )
        return {
            "transaction_id": tx.id,
            "is_reconciled": False,
            "links_removed": int(removed),
        }
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def reconciliation_summary(*, company_id: int, transaction_id: str, db: Session) -> Dict[str, Any]:
    """Read-only per-transaction allocation view."""
    tx = get_transaction(db, company_id, transaction_id)
    links = links_for_transaction(db, tx.id)

    total_matched = sum(float(link.amount_matched or 0) for link in links)
    linked_items = [
        f"expense:{link.expense_id}" if link.expense_id is not None else f"invoice:{link.invoice_id}"
        for link in links
    ]

    return {
        "transaction_id": tx.id,
        "transaction_date": tx.transaction_date.isoformat(),
        "description": tx.description,
        "transaction_amount": float(tx.amount),
        "is_reconciled": bool(tx.is_reconciled),
        "total_matched": total_matched,
        "unmatched_amount": abs(float(tx.amount)) - total_matched,
        "link_count": len(links),
        "linked_items": linked_items,
    }


def load_suggestions(*, company_id: int, db: Session) -> List[SuggestedMatch]:
    transactions = (
        db.query(BankTransaction)
        .filter(BankTransaction.company_id == int(company_id), BankTransaction.is_reconciled.is_(False))
        .order_by(BankTransaction.transaction_date.desc(), BankTransaction.created_at.desc())
        .all()
    )
    expenses = (
        db.query(Expense)
        .filter(Expense.company_id == int(company_id), Expense.is_reconciled.is_(False))
        .order_by(Expense.expense_date.desc(), Expense.created_at.desc())
        .all()
    )
    invoices = list_paid_invoices(db, company_id)
    return suggest_matches(transactions, expenses, invoices)


def reconciliation_stats(*, company_id: int, db: Session) -> Dict[str, int]:
    total = db.query(BankTransaction).filter(BankTransaction.company_id == int(company_id)).count()
    reconciled = (
        db.query(BankTransaction)
        .filter(BankTransaction.company_id == int(company_id), BankTransaction.is_reconciled.is_(True))
        .count()
    )
    return {
        "total": int(total),
        "reconciled": int(reconciled),
        "pending": int(total) - int(reconciled),
        "suggested_count": len(load_suggestions(company_id=company_id, db=db)),
    }
