from __future__ import annotations

from fastapi import APIRouter, Depends

from src.core.auth import AuthContext, require_auth_context
from src.core.quota import QuotaStore, TenantNotFoundError, TierCatalog, get_tier_catalog
from src.core.quota.dependencies import get_quota_store
from src.core.quota.enforcer import utc_now
from src.core.quota.usage import ResourceUsage, UsageStatus, build_usage_status
from src.schemas.billing import (
    ExpenseUsageResponse,
    ResourceUsageResponse,
    TierResponse,
    UsageStatusResponse,
)

router = APIRouter(prefix="/billing", tags=["billing"])


def _resource_response(usage: ResourceUsage) -> ResourceUsageResponse:
    return ResourceUsageResponse(
        current=usage.current,
        limit=usage.limit,
        unlimited=usage.unlimited,
        percentage=usage.percentage,
    )


def usage_status_response(status: UsageStatus) -> UsageStatusResponse:
    return UsageStatusResponse(
        tier=status.tier,
        tier_display_name=status.tier_display_name,
        subscription_status=status.subscription_status,
        projects=_resource_response(status.projects),
        users=_resource_response(status.users),
        expenses=ExpenseUsageResponse(
            **_resource_response(status.expenses).model_dump(),
            reset_date=status.expense_reset_date,
        ),
    )


@router.get("/usage", response_model=UsageStatusResponse)
async def get_usage(
    auth: AuthContext = Depends(require_auth_context),
    store: QuotaStore = Depends(get_quota_store),
    catalog: TierCatalog = Depends(get_tier_catalog),
) -> UsageStatusResponse:
    usage = await store.get_usage(auth.tenant_id)
    if usage is None:
        raise TenantNotFoundError(auth.tenant_id)
    return usage_status_response(build_usage_status(usage, catalog, utc_now()))


@router.get("/tiers", response_model=list[TierResponse])
async def list_tiers(
    catalog: TierCatalog = Depends(get_tier_catalog),
) -> list[TierResponse]:
    return [TierResponse(**tier.payload()) for tier in catalog.tiers()]
