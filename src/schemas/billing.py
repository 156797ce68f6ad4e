from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ResourceUsageResponse(BaseModel):
    current: int
    limit: int | None
    unlimited: bool
    percentage: float


class ExpenseUsageResponse(ResourceUsageResponse):
    reset_date: datetime | None = None


class UsageStatusResponse(BaseModel):
    tier: str
    tier_display_name: str
    subscription_status: str
    projects: ResourceUsageResponse
    users: ResourceUsageResponse
    expenses: ExpenseUsageResponse


class TierResponse(BaseModel):
    name: str
    display_name: str
    max_projects: int | None
    max_users: int | None
    max_expenses_per_month: int | None
    next_tier: str | None
    price: str
    currency: str


class QuotaDeniedDetail(BaseModel):
    reason: str
    message: str | None = None
    resource: str | None = None
    current_usage: int | None = None
    limit: int | None = None
    suggested_tier: str | None = None


class BillingWebhookResponse(BaseModel):
    received: bool
    event_type: str
    tenant_id: str | None = None
    updated: bool


class QuotaDeniedResponse(BaseModel):
    detail: QuotaDeniedDetail
