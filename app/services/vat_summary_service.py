"""
Quarterly VAT position: input VAT reclaimed on expenses against output VAT
charged on paid invoices.

Expenses are bucketed by expense_date; invoices by updated_at, which stands
in for the payment date.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from app.models.expense import Expense
from app.services.quote_service import list_paid_invoices

QUARTER_NAMES = {
    1: "Jan - Mar",
    2: "Apr - Jun",
    3: "Jul - Sep",
    4: "Oct - Dec",
}

ALL_QUARTERS = "all"


@dataclass
class QuarterSummary:
    quarter: str
    label: str
    input_vat: float = 0.0
    output_vat: float = 0.0
    net_vat: float = 0.0
    expense_count: int = 0
    invoice_count: int = 0


def quarter_key(value: Union[date, datetime]) -> str:
    return f"{value.year}-Q{(value.month - 1) // 3 + 1}"


def quarter_label(key: str) -> str:
    year, quarter = key.split("-Q")
    return f"{QUARTER_NAMES[int(quarter)]} {year}"


def quarter_bounds(key: str) -> Tuple[date, date]:
    """[start, end) of the quarter."""
    try:
        year_str, quarter_str = key.split("-Q")
        year, quarter = int(year_str), int(quarter_str)
    except ValueError as exc:
        raise ValueError(f"Invalid quarter: {key}") from exc
    if quarter not in QUARTER_NAMES:
        raise ValueError(f"Invalid quarter: {key}")

    start = date(year, (quarter - 1) * 3 + 1, 1)
    end = date(year + 1, 1, 1) if quarter == 4 else date(year, quarter * 3 + 1, 1)
    return start, end


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def _amount(value: Any) -> float:
    return float(value) if value else 0.0


def summarise_by_quarter(expenses: Iterable[Any], invoices: Iterable[Any]) -> List[QuarterSummary]:
    """Newest quarter first."""
    summaries: Dict[str, QuarterSummary] = {}

    def bucket(key: str) -> QuarterSummary:
        if key not in summaries:
            summaries[key] = QuarterSummary(quarter=key, label=quarter_label(key))
        return summaries[key]

    for expense in expenses:
        s = bucket(quarter_key(expense.expense_date))
        s.input_vat += _amount(expense.vat_amount)
        s.expense_count += 1

    for invoice in invoices:
        s = bucket(quarter_key(invoice.updated_at))
        s.output_vat += _amount(invoice.vat)
        s.invoice_count += 1

    for s in summaries.values():
        s.net_vat = s.output_vat - s.input_vat

    return sorted(summaries.values(), key=lambda s: s.quarter, reverse=True)


def category_breakdown(expenses: Iterable[Any]) -> List[Dict[str, Any]]:
    categories: Dict[str, Dict[str, Any]] = {}
    for expense in expenses:
        entry = categories.setdefault(expense.category or "other", {"amount": 0.0, "vat": 0.0, "count": 0})
        entry["amount"] += _amount(expense.amount)
        entry["vat"] += _amount(expense.vat_amount)
        entry["count"] += 1

    rows = [{"category": name, **data} for name, data in categories.items()]
    return sorted(rows, key=lambda r: r["vat"], reverse=True)


def build_vat_report(
    expenses: List[Any],
    invoices: List[Any],
    quarter: Optional[str] = ALL_QUARTERS,
) -> Dict[str, Any]:
    quarters = summarise_by_quarter(expenses, invoices)

    if quarter in (None, ALL_QUARTERS):
        selected_expenses, selected_invoices = expenses, invoices
        input_vat = sum(s.input_vat for s in quarters)
        output_vat = sum(s.output_vat for s in quarters)
    else:
        start, end = quarter_bounds(quarter)
        selected_expenses = [e for e in expenses if start <= _as_date(e.expense_date) < end]
        selected_invoices = [i for i in invoices if start <= _as_date(i.updated_at) < end]
        input_vat = sum(_amount(e.vat_amount) for e in selected_expenses)
        output_vat = sum(_amount(i.vat) for i in selected_invoices)

    return {
        "quarter": quarter or ALL_QUARTERS,
        "available_quarters": [ALL_QUARTERS] + [s.quarter for s in quarters],
        "summary": {
            "input_vat": input_vat,
            "output_vat": output_vat,
            "net_vat": output_vat - input_vat,
            "expense_count": len(selected_expenses),
            "invoice_count": len(selected_invoices),
        },
        "quarters": [asdict(s) for s in quarters],
        "categories": category_breakdown(selected_expenses),
    }


def vat_report(*, company_id: int, db: Session, quarter: Optional[str] = ALL_QUARTERS) -> Dict[str, Any]:
    expenses = (
        db.query(Expense)
        .filter(Expense.company_id == int(company_id))
        .order_by(Expense.expense_date.desc())
        .all()
    )
    invoices = list_paid_invoices(db, company_id)
    return build_vat_report(expenses, invoices, quarter)
