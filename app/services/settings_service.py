from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.business_settings import BusinessSettings
from app.services.subscription_service import SubscriptionStatus, SubscriptionTier, to_utc_naive
from app.services.totals_engine import CalculationOptions

SETTINGS_DEFAULTS: Dict[str, Any] = {
    "enable_vat": True,
    "enable_cis": False,
    "is_vat_registered": False,
    "default_labour_rate": 0,
    "default_tax_percent": 20,
    "default_cis_percent": 20,
}

SUBSCRIPTION_DEFAULTS: Dict[str, Any] = {
    "subscription_tier": SubscriptionTier.FREE.value,
    "subscription_status": SubscriptionStatus.ACTIVE.value,
    "trial_end": None,
    "subscription_period_end": None,
    "usage_limits": None,
}


def _new_row(company_id: int) -> BusinessSettings:
    return BusinessSettings(company_id=int(company_id), **SETTINGS_DEFAULTS, **SUBSCRIPTION_DEFAULTS)


def get_settings(db: Session, company_id: int) -> BusinessSettings:
    """Stored settings for the company, or an unsaved row holding the defaults."""
    row = db.get(BusinessSettings, int(company_id))
    if row is None:
        row = _new_row(company_id)
    return row


def _get_or_add(db: Session, company_id: int) -> BusinessSettings:
    row = db.get(BusinessSettings, int(company_id))
    if row is None:
        row = _new_row(company_id)
        db.add(row)
    return row


def update_settings(db: Session, company_id: int, changes: Dict[str, Any]) -> BusinessSettings:
    """Caller owns the transaction. Subscription fields are not editable here."""
    row = _get_or_add(db, company_id)

    for key, value in changes.items():
        if key not in SETTINGS_DEFAULTS:
            raise ValueError(f"Unknown setting: {key}")
        setattr(row, key, value)

    db.flush()
    return row


def update_subscription(db: Session, company_id: int, changes: Dict[str, Any]) -> BusinessSettings:
    """Record plan state reported by billing. Caller owns the transaction."""
    row = _get_or_add(db, company_id)

    for key, value in changes.items():
        if key not in SUBSCRIPTION_DEFAULTS:
            raise ValueError(f"Unknown subscription field: {key}")
        if key == "subscription_tier":
            value = SubscriptionTier(value).value
        elif key == "subscription_status":
            value = SubscriptionStatus(value).value
        elif key in ("trial_end", "subscription_period_end") and value is not None:
            if not isinstance(value, datetime):
                raise ValueError(f"{key} must be a datetime")
            value = to_utc_naive(value)
        setattr(row, key, value)

    db.flush()
    return row


def calculation_options(settings: BusinessSettings) -> CalculationOptions:
    return CalculationOptions(
        enable_vat=bool(settings.enable_vat),
        enable_cis=bool(settings.enable_cis),
        default_labour_rate=float(settings.default_labour_rate or 0),
    )
