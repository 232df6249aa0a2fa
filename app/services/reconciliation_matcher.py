"""
Suggests which expense or paid invoice explains each unreconciled bank
transaction.

Read-only heuristic. Money out (negative amount) is matched against
unreconciled expenses, either on the exact amount or on the amount grossed
up by ASSUMED_VAT_MULTIPLIER. Money in is matched against paid invoices on
the exact total. The first qualifying candidate in iteration order wins;
candidates are not ranked.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

AMOUNT_TOLERANCE = 0.01

EXPENSE_WINDOW_DAYS = 7
EXPENSE_HIGH_DAYS = 2
EXPENSE_MEDIUM_DAYS = 5

INVOICE_WINDOW_DAYS = 30
INVOICE_HIGH_DAYS = 7
INVOICE_MEDIUM_DAYS = 14

# Flat UK standard rate; the expense's own vat_amount is not consulted.
ASSUMED_VAT_MULTIPLIER = 1.2


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class SuggestedMatch:
    transaction: Any
    confidence: Confidence
    reason: str
    expense: Optional[Any] = None
    invoice: Optional[Any] = None


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def days_between(a: Union[date, datetime], b: Union[date, datetime]) -> float:
    return abs((_as_datetime(a) - _as_datetime(b)).total_seconds()) / 86400


def _whole_days(days: float) -> int:
    # halves round up: 2.5 days reads as 3
    return int(math.floor(days + 0.5))


def _amounts_equal(a: float, b: float) -> bool:
    return abs(a - b) < AMOUNT_TOLERANCE


def _expense_matches(tx_amount: float, tx_date: date, expense: Any) -> bool:
    if days_between(tx_date, expense.expense_date) > EXPENSE_WINDOW_DAYS:
        return False
    expense_amount = float(expense.amount)
    return _amounts_equal(tx_amount, expense_amount) or _amounts_equal(
        tx_amount, expense_amount * ASSUMED_VAT_MULTIPLIER
    )


def _invoice_matches(tx_amount: float, tx_date: date, invoice: Any) -> bool:
    if invoice.total is None:
        return False
    if days_between(tx_date, invoice.updated_at) > INVOICE_WINDOW_DAYS:
        return False
    return _amounts_equal(tx_amount, float(invoice.total))


def _match_expense(transaction: Any, expenses: List[Any]) -> Optional[SuggestedMatch]:
    tx_amount = abs(float(transaction.amount))
    expense = next((e for e in expenses if _expense_matches(tx_amount, transaction.transaction_date, e)), None)
    if expense is None:
        return None

    days = days_between(transaction.transaction_date, expense.expense_date)
    exact = _amounts_equal(tx_amount, float(expense.amount))

    if exact and days <= EXPENSE_HIGH_DAYS:
        confidence = Confidence.HIGH
    elif days <= EXPENSE_MEDIUM_DAYS:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    if exact:
        reason = f"Exact amount match (£{tx_amount:.2f}), {_whole_days(days)} days apart"
    else:
        reason = f"Amount with VAT match, {_whole_days(days)} days apart"

    return SuggestedMatch(transaction=transaction, expense=expense, confidence=confidence, reason=reason)


def _match_invoice(transaction: Any, invoices: List[Any]) -> Optional[SuggestedMatch]:
    tx_amount = float(transaction.amount)
    invoice = next((i for i in invoices if _invoice_matches(tx_amount, transaction.transaction_date, i)), None)
    if invoice is None:
        return None

    days = days_between(transaction.transaction_date, invoice.updated_at)
    if days <= INVOICE_HIGH_DAYS:
        confidence = Confidence.HIGH
    elif days <= INVOICE_MEDIUM_DAYS:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW

    reason = f"Invoice #{invoice.reference_number} (£{float(invoice.total):.2f}), {_whole_days(days)} days apart"
    return SuggestedMatch(transaction=transaction, invoice=invoice, confidence=confidence, reason=reason)


def suggest_matches(
    transactions: Iterable[Any],
    expenses: Iterable[Any],
    paid_invoices: Iterable[Any],
) -> List[SuggestedMatch]:
    """
    At most one suggestion per unreconciled transaction, in transaction order.

    Reconciled transactions and reconciled expenses are skipped here, so the
    caller may pass unfiltered collections. Invoices are taken as given;
    pass only paid ones.
    """
    open_expenses = [e for e in expenses if not e.is_reconciled]
    invoices = list(paid_invoices)

    matches: List[SuggestedMatch] = []
    for tx in transactions:
        if tx.is_reconciled:
            continue

        amount = float(tx.amount)
        if amount < 0:
            match = _match_expense(tx, open_expenses)
        elif amount > 0:
            match = _match_invoice(tx, invoices)
        else:
            match = None

        if match is not None:
            matches.append(match)

    return matches
