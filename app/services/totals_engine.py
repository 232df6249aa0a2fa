"""
Quote / invoice totals.

Pure functions over a QuoteDocument. Nothing here touches the database and
nothing raises on incomplete documents: missing numbers count as 0 and an
unknown or missing adjustment type is treated as a fixed amount.

Order of derivation:
  section materials, labour, price
  -> sections total -> markup -> discount -> VAT (on discounted amount)
  -> CIS (on labour only) -> grand total -> part payment
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from app.schemas.quote import QuoteDocument, QuoteSection


class AdjustmentType(str, Enum):
    """How a discount or part payment value is applied."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"

    @classmethod
    def coerce(cls, value: Union["AdjustmentType", str, None]) -> "AdjustmentType":
        # anything other than an explicit percentage is a fixed amount
        if isinstance(value, cls):
            return value
        if value == cls.PERCENTAGE.value:
            return cls.PERCENTAGE
        return cls.FIXED


@dataclass(frozen=True)
class CalculationOptions:
    enable_vat: bool = True
    enable_cis: bool = False
    default_labour_rate: float = 0.0


@dataclass(frozen=True)
class DisplayOptions:
    show_vat: bool = True
    show_cis: bool = False


@dataclass(frozen=True)
class QuoteTotals:
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

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def first_present(*values: Optional[Any]) -> Optional[Any]:
    """Return the first value that is not None. Zero counts as present."""
    for value in values:
        if value is not None:
            return value
    return None


def _num(value: Optional[float]) -> float:
    return float(value) if value else 0.0


def _apply_adjustment(base: float, adjustment_type: Union[AdjustmentType, str, None], value: Optional[float]) -> float:
    if not value:
        return 0.0
    if AdjustmentType.coerce(adjustment_type) is AdjustmentType.PERCENTAGE:
        return base * (float(value) / 100)
    return float(value)


def calculate_section_materials(section: QuoteSection) -> float:
    return sum(_num(item.total_price) for item in (section.items or []) if not item.is_heading)


def calculate_section_labour(
    section: QuoteSection,
    document_labour_rate: Optional[float],
    default_labour_rate: float,
) -> float:
    """
    Labour precedence: itemised labour, then a direct labour_cost override,
    then labour_hours at the effective rate.
    """
    effective_rate = _num(first_present(section.labour_rate, document_labour_rate, default_labour_rate))

    if section.labour_items:
        return sum(
            _num(item.hours) * _num(first_present(item.rate, effective_rate))
            for item in section.labour_items
        )

    if section.labour_cost is not None:
        return float(section.labour_cost)

    return _num(section.labour_hours) * effective_rate


def calculate_section_price(section: QuoteSection, materials_total: float, labour_total: float) -> float:
    if section.subsection_price is not None:
        return float(section.subsection_price)
    return materials_total + labour_total


def calculate_discount(
    subtotal: float,
    discount_type: Union[AdjustmentType, str, None],
    discount_value: Optional[float],
) -> float:
    return _apply_adjustment(subtotal, discount_type, discount_value)


def calculate_vat(after_discount: float, tax_percent: Optional[float], *, enable_vat: bool, show_vat: bool) -> float:
    if not enable_vat or not show_vat:
        return 0.0
    return after_discount * (_num(tax_percent) / 100)


def calculate_cis(labour_total: float, cis_percent: Optional[float], *, enable_cis: bool, show_cis: bool) -> float:
    # CIS is withheld on labour only; markup and discount do not touch it.
    if not enable_cis or not show_cis:
        return 0.0
    return labour_total * (_num(cis_percent) / 100)


def calculate_part_payment(
    grand_total: float,
    enabled: Optional[bool],
    payment_type: Union[AdjustmentType, str, None],
    value: Optional[float],
) -> float:
    if not enabled:
        return 0.0
    return _apply_adjustment(grand_total, payment_type, value)


def calculate_quote_totals(
    document: QuoteDocument,
    options: CalculationOptions,
    display: DisplayOptions,
) -> QuoteTotals:
    materials_total = 0.0
    labour_total = 0.0
    sections_total = 0.0

    for section in document.sections or []:
        section_materials = calculate_section_materials(section)
        section_labour = calculate_section_labour(section, document.labour_rate, options.default_labour_rate)

        materials_total += section_materials
        labour_total += section_labour
        sections_total += calculate_section_price(section, section_materials, section_labour)

    client_subtotal = sections_total * (1 + _num(document.markup_percent) / 100)
    discount_amount = calculate_discount(client_subtotal, document.discount_type, document.discount_value)
    after_discount = client_subtotal - discount_amount

    tax_amount = calculate_vat(
        after_discount,
        document.tax_percent,
        enable_vat=options.enable_vat,
        show_vat=display.show_vat,
    )
    cis_amount = calculate_cis(
        labour_total,
        document.cis_percent,
        enable_cis=options.enable_cis,
        show_cis=display.show_cis,
    )

    grand_total = after_discount + tax_amount - cis_amount

    part_payment = document.part_payment
    part_payment_amount = calculate_part_payment(
        grand_total,
        part_payment.enabled,
        part_payment.type,
        part_payment.value,
    )

    return QuoteTotals(
        materials_total=materials_total,
        labour_total=labour_total,
        sections_total=sections_total,
        client_subtotal=client_subtotal,
        discount_amount=discount_amount,
        after_discount=after_discount,
        tax_amount=tax_amount,
        cis_amount=cis_amount,
        grand_total=grand_total,
        part_payment_amount=part_payment_amount,
        balance_due=grand_total - part_payment_amount,
    )
