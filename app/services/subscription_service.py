"""
Trial state, plan tiers and feature access for a company.

Everything here reads a settings-like object (subscription_tier,
subscription_status, trial_end, subscription_period_end, usage_limits) and
an explicit `now`, so the rules can be checked without a database. The
billing provider that writes those fields is not part of this service.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class SubscriptionTier(str, Enum):
    FREE = "free"
    PROFESSIONAL = "professional"
    BUSINESS = "business"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class TrialUrgency(str, Enum):
    NONE = "none"
    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"
    EXPIRED = "expired"


class Feature(str, Enum):
    INVOICES = "invoices"
    EXPENSES = "expenses"
    SCHEDULE = "schedule"
    SITE_DOCUMENTS = "site_documents"
    MATERIALS_LIBRARY = "materials_library"
    BANK_IMPORT = "bank_import"
    VAT_REPORTS = "vat_reports"
    PAYABLES = "payables"
    FILING_CABINET = "filing_cabinet"
    UNLIMITED_CUSTOMERS = "unlimited_customers"
    UNLIMITED_JOB_PACKS = "unlimited_job_packs"
    UNLIMITED_PHOTOS = "unlimited_photos"


class AccessDeniedReason(str, Enum):
    TIER_REQUIRED = "tier_required"
    TRIAL_EXPIRED = "trial_expired"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    LIMIT_REACHED = "limit_reached"
    PAST_DUE = "past_due"


_TIER_RANK = {
    SubscriptionTier.FREE: 1,
    SubscriptionTier.PROFESSIONAL: 2,
    SubscriptionTier.BUSINESS: 3,
}

FEATURE_TIERS: Dict[Feature, SubscriptionTier] = {
    Feature.INVOICES: SubscriptionTier.FREE,
    Feature.SCHEDULE: SubscriptionTier.FREE,
    Feature.EXPENSES: SubscriptionTier.PROFESSIONAL,
    Feature.SITE_DOCUMENTS: SubscriptionTier.PROFESSIONAL,
    Feature.MATERIALS_LIBRARY: SubscriptionTier.PROFESSIONAL,
    Feature.UNLIMITED_CUSTOMERS: SubscriptionTier.PROFESSIONAL,
    Feature.UNLIMITED_JOB_PACKS: SubscriptionTier.PROFESSIONAL,
    Feature.BANK_IMPORT: SubscriptionTier.BUSINESS,
    Feature.VAT_REPORTS: SubscriptionTier.BUSINESS,
    Feature.PAYABLES: SubscriptionTier.BUSINESS,
    Feature.FILING_CABINET: SubscriptionTier.BUSINESS,
    Feature.UNLIMITED_PHOTOS: SubscriptionTier.BUSINESS,
}

# None means unlimited
TIER_LIMITS: Dict[SubscriptionTier, Dict[str, Optional[int]]] = {
    SubscriptionTier.FREE: {
        "customers": 5,
        "job_packs": 3,
        "quotes": 3,
        "invoices": 3,
        "photos_per_month": 20,
        "documents_per_month": 5,
    },
    SubscriptionTier.PROFESSIONAL: {
        "customers": None,
        "job_packs": None,
        "quotes": None,
        "invoices": None,
        "photos_per_month": 100,
        "documents_per_month": 50,
    },
    SubscriptionTier.BUSINESS: {
        "customers": None,
        "job_packs": None,
        "quotes": None,
        "invoices": None,
        "photos_per_month": None,
        "documents_per_month": None,
    },
}

TIER_NAMES = {
    SubscriptionTier.FREE: "Free",
    SubscriptionTier.PROFESSIONAL: "Professional",
    SubscriptionTier.BUSINESS: "Business",
}

FEATURE_NAMES = {
    Feature.INVOICES: "Invoices",
    Feature.EXPENSES: "Expense Tracking",
    Feature.SCHEDULE: "Schedule",
    Feature.SITE_DOCUMENTS: "Site Documents",
    Feature.MATERIALS_LIBRARY: "Materials Library",
    Feature.BANK_IMPORT: "Bank Import",
    Feature.VAT_REPORTS: "VAT Reports",
    Feature.PAYABLES: "Payables",
    Feature.FILING_CABINET: "Filing Cabinet",
    Feature.UNLIMITED_CUSTOMERS: "Unlimited Customers",
    Feature.UNLIMITED_JOB_PACKS: "Unlimited Job Packs",
    Feature.UNLIMITED_PHOTOS: "Unlimited Photos",
}

DENIAL_MESSAGES = {
    AccessDeniedReason.TRIAL_EXPIRED: "Free trial has ended",
    AccessDeniedReason.SUBSCRIPTION_EXPIRED: "Subscription has expired",
    AccessDeniedReason.SUBSCRIPTION_CANCELLED: "Subscription has been cancelled",
    AccessDeniedReason.PAST_DUE: "Subscription payment is past due",
}

_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class TrialStatus:
    is_trialing: bool
    is_expired: bool
    days_remaining: Optional[int]
    trial_end: Optional[datetime]
    status: SubscriptionStatus


@dataclass(frozen=True)
class FeatureAccess:
    allowed: bool
    current_tier: SubscriptionTier
    is_trialing: bool
    trial_days_remaining: Optional[int]
    reason: Optional[AccessDeniedReason] = None
    required_tier: Optional[SubscriptionTier] = None


@dataclass(frozen=True)
class UsageLimit:
    allowed: bool
    current: int
    limit: Optional[int]
    remaining: Optional[int]
    is_unlimited: bool


@dataclass(frozen=True)
class SubscriptionInfo:
    tier: SubscriptionTier
    status: SubscriptionStatus
    trial_end: Optional[datetime]
    subscription_period_end: Optional[datetime]
    is_active: bool
    trial_days_remaining: Optional[int]
    usage_limits: Dict[str, Optional[int]] = field(default_factory=dict)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Naive UTC, which is how the database hands timestamps back."""
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _now(now: Optional[datetime]) -> datetime:
    return to_utc_naive(now) if now is not None else datetime.utcnow()


def _tier(settings: Any) -> SubscriptionTier:
    return SubscriptionTier(getattr(settings, "subscription_tier", None) or SubscriptionTier.FREE.value)


def _status(settings: Any) -> SubscriptionStatus:
    return SubscriptionStatus(getattr(settings, "subscription_status", None) or SubscriptionStatus.TRIALING.value)


def days_until(end: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days left before `end`, counting a part day as one; never negative."""
    if end is None:
        return None
    seconds = (to_utc_naive(end) - now).total_seconds()
    return max(0, math.ceil(seconds / _DAY_SECONDS))


def trial_status(settings: Any, now: Optional[datetime] = None) -> TrialStatus:
    now = _now(now)
    status = _status(settings)
    trial_end = to_utc_naive(getattr(settings, "trial_end", None))

    is_trialing = status is SubscriptionStatus.TRIALING
    is_expired = status is SubscriptionStatus.EXPIRED or (
        is_trialing and trial_end is not None and trial_end < now
    )

    if is_expired:
        days_remaining: Optional[int] = 0
    else:
        days_remaining = days_until(trial_end, now)

    return TrialStatus(
        is_trialing=is_trialing,
        is_expired=is_expired,
        days_remaining=days_remaining,
        trial_end=trial_end,
        status=status,
    )


def trial_urgency(trial: TrialStatus) -> TrialUrgency:
    """
    none: not trialing, or more than 7 days left
    info: 4-7 days left
    warning: 1-3 days left
    urgent: final day
    expired: trial is over
    """
    if trial.is_expired:
        return TrialUrgency.EXPIRED
    if not trial.is_trialing:
        return TrialUrgency.NONE

    days = trial.days_remaining
    if days is None or days > 7:
        return TrialUrgency.NONE
    if days == 0:
        return TrialUrgency.URGENT
    if days <= 3:
        return TrialUrgency.WARNING
    return TrialUrgency.INFO


def trial_message(trial: TrialStatus) -> str:
    if trial.is_expired:
        return "Your free trial has ended. Choose a plan to continue using all features."
    if not trial.is_trialing:
        return ""

    days = trial.days_remaining
    if days is None:
        return "You are on a free trial."
    if days == 0:
        return "Your trial ends today!"
    if days == 1:
        return "Your trial ends tomorrow!"
    return f"{days} days left in your free trial"


def feature_access(settings: Any, feature: Feature, now: Optional[datetime] = None) -> FeatureAccess:
    """
    Status rules come before the tier check, so an expired, past-due or
    lapsed account loses free-tier features too.
    """
    now = _now(now)
    tier = _tier(settings)
    status = _status(settings)
    trial_end = to_utc_naive(getattr(settings, "trial_end", None))
    period_end = to_utc_naive(getattr(settings, "subscription_period_end", None))
    is_trialing = status is SubscriptionStatus.TRIALING

    def denied(reason: AccessDeniedReason, **kwargs) -> FeatureAccess:
        values = {
            "current_tier": tier,
            "is_trialing": is_trialing,
            "trial_days_remaining": days_until(trial_end, now),
        }
        values.update(kwargs)
        return FeatureAccess(allowed=False, reason=reason, **values)

    period_over = period_end is not None and period_end < now

    if status is SubscriptionStatus.EXPIRED or (status is SubscriptionStatus.ACTIVE and period_over):
        return denied(AccessDeniedReason.SUBSCRIPTION_EXPIRED)
    if status is SubscriptionStatus.CANCELLED and period_over:
        return denied(AccessDeniedReason.SUBSCRIPTION_CANCELLED)
    if status is SubscriptionStatus.PAST_DUE:
        return denied(AccessDeniedReason.PAST_DUE)
    if is_trialing and trial_end is not None and trial_end < now:
        return denied(AccessDeniedReason.TRIAL_EXPIRED, trial_days_remaining=0)

    required = FEATURE_TIERS[feature]
    if _TIER_RANK[tier] < _TIER_RANK[required]:
        return denied(AccessDeniedReason.TIER_REQUIRED, required_tier=required)

    return FeatureAccess(
        allowed=True,
        current_tier=tier,
        is_trialing=is_trialing,
        trial_days_remaining=days_until(trial_end, now),
    )


def denial_message(feature: Feature, access: FeatureAccess) -> str:
    if access.reason is AccessDeniedReason.TIER_REQUIRED:
        return f"{FEATURE_NAMES[feature]} requires the {TIER_NAMES[access.required_tier]} plan"
    return DENIAL_MESSAGES[access.reason]


def usage_limits(settings: Any) -> Dict[str, Optional[int]]:
    """Tier defaults, overridden key by key by the company's own limits."""
    limits = dict(TIER_LIMITS[_tier(settings)])
    limits.update(getattr(settings, "usage_limits", None) or {})
    return limits


def usage_limit(settings: Any, resource: str, current: int) -> UsageLimit:
    limits = usage_limits(settings)
    if resource not in limits:
        raise ValueError(f"Unknown usage resource: {resource}")

    limit = limits[resource]
    if limit is None:
        return UsageLimit(allowed=True, current=current, limit=None, remaining=None, is_unlimited=True)

    return UsageLimit(
        allowed=current < limit,
        current=current,
        limit=limit,
        remaining=max(0, limit - current),
        is_unlimited=False,
    )


def can_add(settings: Any, resource: str, current: int) -> bool:
    result = usage_limit(settings, resource, current)
    return result.is_unlimited or bool(result.remaining)


def subscription_info(settings: Any, now: Optional[datetime] = None) -> SubscriptionInfo:
    now = _now(now)
    status = _status(settings)
    trial_end = to_utc_naive(getattr(settings, "trial_end", None))
    period_end = to_utc_naive(getattr(settings, "subscription_period_end", None))

    if status is SubscriptionStatus.ACTIVE:
        is_active = period_end is None or period_end > now
    elif status is SubscriptionStatus.TRIALING:
        is_active = trial_end is not None and trial_end > now
    elif status is SubscriptionStatus.CANCELLED:
        is_active = period_end is not None and period_end > now
    else:
        is_active = False

    return SubscriptionInfo(
        tier=_tier(settings),
        status=status,
        trial_end=trial_end,
        subscription_period_end=period_end,
        is_active=is_active,
        trial_days_remaining=days_until(trial_end, now),
        usage_limits=usage_limits(settings),
    )
