from __future__ import annotations

import asyncio
import logging
from uuid import uuid4

import pytest

from src.core.quota.enforcer import QuotaEnforcer
from src.core.quota.errors import InvalidResourceTypeError, TenantNotFoundError
from src.core.quota.releaser import QuotaReleaser


@pytest.mark.asyncio
async def test_release_decrements_counter(store) -> None:
    tenant_id = store.add_tenant(projects=2)

    await QuotaReleaser(store).release(tenant_id, "project")

    assert store.row(tenant_id).current_projects == 1
    assert store.calls == ["decrement_available"]


@pytest.mark.asyncio
async def test_release_at_zero_is_clamped_and_logged(store, caplog: pytest.LogCaptureFixture) -> None:
    tenant_id = store.add_tenant(users=0)

    with caplog.at_level(logging.WARNING, logger="src.core.quota.releaser"):
        await QuotaReleaser(store).release(tenant_id, "user")

    assert store.row(tenant_id).current_users == 0
    assert "underflow" in caplog.text


@pytest.mark.asyncio
async def test_concurrent_releases_never_go_negative(store) -> None:
    tenant_id = store.add_tenant(expenses=3)
    releaser = QuotaReleaser(store)

    await asyncio.gather(*(releaser.release(tenant_id, "expense") for _ in range(10)))

    assert store.row(tenant_id).current_month_expenses == 0


@pytest.mark.asyncio
async def test_release_frees_a_slot_for_the_next_reservation(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="trial", projects=3)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    assert (await enforcer.check_and_reserve(tenant_id, "project")).allowed is False
    await QuotaReleaser(store).release(tenant_id, "project")
    assert (await enforcer.check_and_reserve(tenant_id, "project")).allowed is True
    assert store.row(tenant_id).current_projects == 3


@pytest.mark.asyncio
async def test_release_missing_tenant_raises(store) -> None:
    with pytest.raises(TenantNotFoundError):
        await QuotaReleaser(store).release(uuid4(), "project")


@pytest.mark.asyncio
async def test_release_validates_input(store) -> None:
    releaser = QuotaReleaser(store)

    with pytest.raises(InvalidResourceTypeError):
        await releaser.release(uuid4(), "contractor")
    with pytest.raises(ValueError):
        await releaser.release(uuid4(), "project", amount=0)
