from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class FeatureAccessResponse(BaseModel):
    feature: str
    name: str
    allowed: bool
    reason: Optional[str] = None
    required_tier: Optional[str] = None


class UsageResponse(BaseModel):
    allowed: bool
    current: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    is_unlimited: bool


class SubscriptionResponse(BaseModel):
    tier: str
    tier_name: str
    status: str
    is_active: bool
    is_trialing: bool
    trial_expired: bool
    trial_end: Optional[datetime] = None
    subscription_period_end: Optional[datetime] = None
    trial_days_remaining: Optional[int] = None
    trial_urgency: str
    trial_message: str
    usage_limits: Dict[str, Optional[int]]
    usage: Dict[str, UsageResponse]
    features: List[FeatureAccessResponse]
