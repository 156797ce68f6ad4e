from __future__ import annotations

import logging
from uuid import UUID

from src.core.quota.decision import ResourceType
from src.core.quota.errors import TenantNotFoundError
from src.core.quota.store import QuotaStore

logger = logging.getLogger(__name__)


class QuotaReleaser:
    def __init__(self, store: QuotaStore) -> None:
        self.store = store

    async def release(self, tenant_id: UUID, resource_type: ResourceType | str, amount: int = 1) -> None:
        """Give back ``amount`` units after the resource was deleted.

        Never rejected by limits. A release that would drive the counter below
        zero is clamped to zero instead.
        """
        resource = ResourceType.parse(resource_type)
        if amount < 1:
            raise ValueError(f"Release amount must be positive, got {amount}")

        after = await self.store.decrement_available(tenant_id, resource, amount)
        if after is not None:
            return

        after = await self.store.decrement_clamped(tenant_id, resource, amount)
        if after is None:
            raise TenantNotFoundError(tenant_id)
        logger.warning(
            "Quota release underflow clamped to zero tenant=%s resource=%s amount=%s",
            tenant_id,
            resource.value,
            amount,
        )
