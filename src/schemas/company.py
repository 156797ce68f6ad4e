from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CompanyRegisterRequest(BaseModel):
    company_name: str = Field(min_length=2, max_length=255)
    admin_email: str | None = Field(
        default=None,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+$",
    )


class CompanyResponse(BaseModel):
    tenant_id: UUID
    company_name: str
    subscription_tier: str
    subscription_status: str
    trial_ends_at: datetime | None = None
