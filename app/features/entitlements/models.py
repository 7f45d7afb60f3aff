"""
Feature catalog, plans, per-plan feature rows and subscriptions.

An organization's entitlements come from the plan of its active
subscription: which features are enabled and how many units, users and
extranet tenants it may hold.
"""
import enum
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import String, Boolean, ForeignKey, Integer, Text, JSON, DateTime, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class BillingPeriod(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Statuses under which the subscription's plan applies
LIVE_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.TRIALING,
    SubscriptionStatus.PAST_DUE,
)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Feature(Base, TimestampMixin):
    """Catalog entry for a gateable product feature, keyed by name."""
    __tablename__ = "features"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_beta: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Informational only; gating goes through the plan
    required_plan: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Feature(name={self.name!r}, active={self.is_active})>"


class Plan(Base, TimestampMixin):
    """
    Subscription plan.

    Limits of None or -1 are unlimited. features is a JSON map of feature
    name to flag, used when no PlanFeature row exists for the feature.
    """
    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    max_lots: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_users: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_extranet_tenants: Mapped[int | None] = mapped_column(Integer, nullable=True)

    features: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Plan(name={self.name!r}, max_lots={self.max_lots})>"


class PlanFeature(Base, TimestampMixin):
    """Explicit feature flag of a plan. Wins over the plan's JSON map."""
    __tablename__ = "plan_features"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    plan_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    feature_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("plan_id", "feature_name", name="uq_plan_features_plan_feature"),
    )

    def __repr__(self) -> str:
        return f"<PlanFeature(plan_id={self.plan_id}, feature={self.feature_name!r}, enabled={self.is_enabled})>"


class Subscription(Base, TimestampMixin):
    """Binding of an organization to a plan for a billing period."""
    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    plan_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(SubscriptionStatus, name="subscription_status", values_callable=_enum_values),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
    )
    billing_period: Mapped[BillingPeriod] = mapped_column(
        SQLEnum(BillingPeriod, name="billing_period", values_callable=_enum_values),
        default=BillingPeriod.MONTHLY,
        nullable=False,
    )

    current_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Subscription(org_id={self.organization_id}, plan_id={self.plan_id}, status={self.status})>"
