from src.core.quota.decision import LIMIT_REACHED, SUBSCRIPTION_INACTIVE, QuotaDecision, ResourceType
from src.core.quota.enforcer import QuotaEnforcer, period_start
from src.core.quota.errors import (
    InvalidResourceTypeError,
    LimitReachedError,
    QuotaError,
    StoreUnavailableError,
    TenantNotFoundError,
    UnknownTierError,
)
from src.core.quota.releaser import QuotaReleaser
from src.core.quota.store import QuotaStore, SqlQuotaStore, TenantUsage
from src.core.quota.tiers import (
    UNLIMITED,
    Limited,
    TierCatalog,
    TierLimits,
    Unlimited,
    UpgradeAdvisor,
    get_tier_catalog,
)
from src.core.quota.usage import UsageStatus, build_usage_status

__all__ = [
    "LIMIT_REACHED",
    "SUBSCRIPTION_INACTIVE",
    "QuotaDecision",
    "ResourceType",
    "QuotaEnforcer",
    "period_start",
    "QuotaError",
    "LimitReachedError",
    "UnknownTierError",
    "StoreUnavailableError",
    "TenantNotFoundError",
    "InvalidResourceTypeError",
    "QuotaReleaser",
    "QuotaStore",
    "SqlQuotaStore",
    "TenantUsage",
    "Limited",
    "Unlimited",
    "UNLIMITED",
    "TierLimits",
    "TierCatalog",
    "UpgradeAdvisor",
    "get_tier_catalog",
    "UsageStatus",
    "build_usage_status",
]
