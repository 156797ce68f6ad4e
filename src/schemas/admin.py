from __future__ import annotations

from pydantic import BaseModel

from src.schemas.billing import UsageStatusResponse


class TenantUsageSummary(BaseModel):
    tenant_id: str
    clerk_org_id: str
    company_name: str
    usage: UsageStatusResponse


class SystemHealthResponse(BaseModel):
    status: str
    database_ok: bool
    redis_ok: bool
    total_tenants: int
    inactive_tenants: int
