from src.schemas.admin import SystemHealthResponse, TenantUsageSummary
from src.schemas.billing import (
    BillingWebhookResponse,
    ExpenseUsageResponse,
    QuotaDeniedDetail,
    QuotaDeniedResponse,
    ResourceUsageResponse,
    TierResponse,
    UsageStatusResponse,
)
from src.schemas.company import CompanyRegisterRequest, CompanyResponse
from src.schemas.resources import (
    CompanyUserResponse,
    DeletedResponse,
    ExpenseCreateRequest,
    ExpenseResponse,
    InvitationCreateRequest,
    ProjectCreateRequest,
    ProjectResponse,
)

__all__ = [
    "SystemHealthResponse",
    "TenantUsageSummary",
    "BillingWebhookResponse",
    "ExpenseUsageResponse",
    "QuotaDeniedDetail",
    "QuotaDeniedResponse",
    "ResourceUsageResponse",
    "TierResponse",
    "UsageStatusResponse",
    "CompanyRegisterRequest",
    "CompanyResponse",
    "CompanyUserResponse",
    "DeletedResponse",
    "ExpenseCreateRequest",
    "ExpenseResponse",
    "InvitationCreateRequest",
    "ProjectCreateRequest",
    "ProjectResponse",
]
