from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String

from app.database import Base


class BusinessSettings(Base):
    __tablename__ = "business_settings"

    company_id = Column(Integer, primary_key=True)

    enable_vat = Column(Boolean, nullable=False, default=True)
    enable_cis = Column(Boolean, nullable=False, default=False)
    is_vat_registered = Column(Boolean, nullable=False, default=False)

    default_labour_rate = Column(Numeric(12, 2), nullable=False, default=0)
    default_tax_percent = Column(Numeric(6, 2), nullable=False, default=20)
    default_cis_percent = Column(Numeric(6, 2), nullable=False, default=20)

    # written by billing, read by app.services.subscription_service
    subscription_tier = Column(String(20), nullable=False, default="free")
    subscription_status = Column(String(20), nullable=False, default="active")
    trial_end = Column(DateTime, nullable=True)
    subscription_period_end = Column(DateTime, nullable=True)
    usage_limits = Column(JSON, nullable=True)

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "subscription_tier IN ('free', 'professional', 'business')",
            name="ck_business_settings_subscription_tier",
        ),
        CheckConstraint(
            "subscription_status IN ('active', 'trialing', 'past_due', 'cancelled', 'expired')",
            name="ck_business_settings_subscription_status",
        ),
    )
