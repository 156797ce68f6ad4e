from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.core.quota.decision import QuotaDecision


class QuotaError(RuntimeError):
    pass


class LimitReachedError(QuotaError):
    """A tier limit denied the reservation. Carries the data for an upgrade prompt."""

    def __init__(self, decision: QuotaDecision) -> None:
        super().__init__(decision.message or decision.reason or "Limit reached")
        self.decision = decision


class UnknownTierError(QuotaError):
    def __init__(self, tier_name: str) -> None:
        super().__init__(f"Tier {tier_name!r} is not present in the tier catalog")
        self.tier_name = tier_name


class StoreUnavailableError(QuotaError):
    """The quota store could not complete a call. Safe to retry the whole creation."""

    def __init__(self, tenant_id: UUID, resource: str | None = None) -> None:
        super().__init__(f"Quota store unavailable for tenant={tenant_id} resource={resource}")
        self.tenant_id = tenant_id
        self.resource = resource


class TenantNotFoundError(QuotaError):
    def __init__(self, tenant_id: UUID) -> None:
        super().__init__(f"Tenant {tenant_id} not found")
        self.tenant_id = tenant_id


class InvalidResourceTypeError(ValueError):
    pass
