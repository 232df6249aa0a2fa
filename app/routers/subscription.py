from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func

from app.core.authorization import Role, require_role
from app.database import SessionLocal
from app.models.quote import Quote
from app.schemas.subscription import FeatureAccessResponse, SubscriptionResponse, UsageResponse
from app.services import settings_service, subscription_service
from app.services.subscription_service import Feature

router = APIRouter(prefix="/subscription", tags=["Subscription"])


@router.get("", response_model=SubscriptionResponse)
def get_subscription(
    request: Request,
    _role=Depends(require_role(Role.VIEWER)),
):
    # not feature-gated, so a lapsed account can still read its state
    company_id = int(request.state.company_id)
    db = SessionLocal()
    try:
        settings = settings_service.get_settings(db, company_id)
        counts = dict(
            db.query(Quote.type, func.count(Quote.id))
            .filter(Quote.company_id == company_id)
            .group_by(Quote.type)
            .all()
        )
    finally:
        db.close()

    now = datetime.utcnow()
    info = subscription_service.subscription_info(settings, now)
    trial = subscription_service.trial_status(settings, now)

    usage = {}
    for resource, quote_type in (("quotes", "quote"), ("invoices", "invoice")):
        result = subscription_service.usage_limit(settings, resource, int(counts.get(quote_type, 0)))
        usage[resource] = UsageResponse(
            allowed=result.allowed,
            current=result.current,
            limit=result.limit,
            remaining=result.remaining,
            is_unlimited=result.is_unlimited,
        )

    features = []
    for feature in Feature:
        access = subscription_service.feature_access(settings, feature, now)
        features.append(
            FeatureAccessResponse(
                feature=feature.value,
                name=subscription_service.FEATURE_NAMES[feature],
                allowed=access.allowed,
                reason=None if access.reason is None else access.reason.value,
                required_tier=None if access.required_tier is None else access.required_tier.value,
            )
        )

    return SubscriptionResponse(
        tier=info.tier.value,
        tier_name=subscription_service.TIER_NAMES[info.tier],
        status=info.status.value,
        is_active=info.is_active,
        is_trialing=trial.is_trialing,
        trial_expired=trial.is_expired,
        trial_end=info.trial_end,
        subscription_period_end=info.subscription_period_end,
        trial_days_remaining=trial.days_remaining,
        trial_urgency=subscription_service.trial_urgency(trial).value,
        trial_message=subscription_service.trial_message(trial),
        usage_limits=info.usage_limits,
        usage=usage,
        features=features,
    )
