from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from src.core.quota.decision import LIMIT_REACHED, SUBSCRIPTION_INACTIVE, ResourceType
from src.core.quota.enforcer import QuotaEnforcer, is_current_period, period_start
from src.core.quota.errors import (
    InvalidResourceTypeError,
    LimitReachedError,
    StoreUnavailableError,
    TenantNotFoundError,
)
from src.core.quota.tiers import UNLIMITED, Limited, TierCatalog, TierLimits

NOV_1 = datetime(2025, 11, 1, tzinfo=timezone.utc)
DEC_1 = datetime(2025, 12, 1, tzinfo=timezone.utc)


def _catalog_with(**limits: object) -> TierCatalog:
    return TierCatalog(
        [
            TierLimits(
                name="custom",
                display_name="Custom",
                max_projects=limits.get("projects", UNLIMITED),
                max_users=limits.get("users", UNLIMITED),
                max_expenses_per_month=limits.get("expenses", UNLIMITED),
                next_tier=None,
            )
        ]
    )


def test_period_start_is_first_of_month_utc() -> None:
    moment = datetime(2025, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
    assert period_start(moment) == DEC_1
    assert period_start(datetime(2025, 12, 5)) == DEC_1


def test_is_current_period_handles_null_and_naive_dates() -> None:
    assert is_current_period(None, DEC_1) is False
    assert is_current_period(NOV_1, DEC_1) is False
    assert is_current_period(datetime(2025, 12, 1), DEC_1) is True


@pytest.mark.asyncio
async def test_scenario_a_starter_project_limit_reached(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="starter", projects=3)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decision = await enforcer.check_and_reserve(tenant_id, "project")

    assert decision.allowed is False
    assert decision.reason == LIMIT_REACHED
    assert decision.current_usage == 3
    assert decision.limit == 3
    assert decision.suggested_tier == "professional"
    assert store.row(tenant_id).current_projects == 3


@pytest.mark.asyncio
async def test_scenario_b_unlimited_expenses_always_allowed(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="professional", reset_date=DEC_1)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    for _ in range(10_000):
        decision = await enforcer.check_and_reserve(tenant_id, ResourceType.EXPENSE)
        assert decision.allowed is True

    assert store.row(tenant_id).current_month_expenses == 10_000
    assert "increment_expenses_within" not in store.calls


@pytest.mark.asyncio
async def test_scenario_c_concurrent_user_seats_admit_exactly_one(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="trial")
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decisions = await asyncio.gather(
        *(enforcer.check_and_reserve(tenant_id, "user") for _ in range(100))
    )

    allowed = [decision for decision in decisions if decision.allowed]
    denied = [decision for decision in decisions if not decision.allowed]
    assert len(allowed) == 1
    assert len(denied) == 99
    assert all(decision.reason == LIMIT_REACHED for decision in denied)
    assert store.row(tenant_id).current_users == 1


@pytest.mark.asyncio
async def test_scenario_d_stale_period_rolls_over(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="trial", expenses=50, reset_date=NOV_1)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decision = await enforcer.check_and_reserve(tenant_id, "expense")

    assert decision.allowed is True
    row = store.row(tenant_id)
    assert row.current_month_expenses == 1
    assert row.expense_counter_reset_date == DEC_1


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 7, 50])
async def test_concurrent_reservations_never_exceed_limit(store, clock, limit: int) -> None:
    tenant_id = store.add_tenant(tier="custom")
    enforcer = QuotaEnforcer(store, _catalog_with(projects=Limited(limit)), clock=clock)

    decisions = await asyncio.gather(
        *(enforcer.check_and_reserve(tenant_id, "project") for _ in range(100))
    )

    assert sum(decision.allowed for decision in decisions) == limit
    assert store.row(tenant_id).current_projects == limit


@pytest.mark.asyncio
async def test_limit_n_admits_exactly_n_sequentially(store, clock) -> None:
    tenant_id = store.add_tenant(tier="custom")
    enforcer = QuotaEnforcer(store, _catalog_with(projects=Limited(3)), clock=clock)

    results = [(await enforcer.check_and_reserve(tenant_id, "project")).allowed for _ in range(4)]

    assert results == [True, True, True, False]


@pytest.mark.asyncio
async def test_zero_limit_denies_everything(store, clock) -> None:
    tenant_id = store.add_tenant(tier="custom", reset_date=NOV_1)
    enforcer = QuotaEnforcer(
        store,
        _catalog_with(projects=Limited(0), expenses=Limited(0)),
        clock=clock,
    )

    project = await enforcer.check_and_reserve(tenant_id, "project")
    expense = await enforcer.check_and_reserve(tenant_id, "expense")

    assert project.allowed is False
    assert expense.allowed is False
    assert expense.current_usage == 0
    row = store.row(tenant_id)
    assert row.current_projects == 0
    assert row.expense_counter_reset_date == NOV_1


@pytest.mark.asyncio
async def test_multi_unit_reservation_respects_remaining_headroom(store, clock) -> None:
    tenant_id = store.add_tenant(tier="custom", projects=2)
    enforcer = QuotaEnforcer(store, _catalog_with(projects=Limited(5)), clock=clock)

    assert (await enforcer.check_and_reserve(tenant_id, "project", amount=4)).allowed is False
    assert (await enforcer.check_and_reserve(tenant_id, "project", amount=3)).allowed is True
    assert store.row(tenant_id).current_projects == 5


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [1, 50])
async def test_rollover_boundary_race_admits_at_most_limit(store, clock, limit: int) -> None:
    tenant_id = store.add_tenant(tier="custom", expenses=limit, reset_date=NOV_1)
    enforcer = QuotaEnforcer(store, _catalog_with(expenses=Limited(limit)), clock=clock)

    decisions = await asyncio.gather(
        *(enforcer.check_and_reserve(tenant_id, "expense") for _ in range(100))
    )

    assert sum(decision.allowed for decision in decisions) == limit
    row = store.row(tenant_id)
    assert row.current_month_expenses == limit
    assert row.expense_counter_reset_date == DEC_1


@pytest.mark.asyncio
async def test_null_reset_date_is_treated_as_stale(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="trial", expenses=12, reset_date=None)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decision = await enforcer.check_and_reserve(tenant_id, "expense")

    assert decision.allowed is True
    assert store.row(tenant_id).current_month_expenses == 1
    assert store.row(tenant_id).expense_counter_reset_date == DEC_1


@pytest.mark.asyncio
async def test_current_period_expense_limit_reached(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="trial", expenses=50, reset_date=DEC_1)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decision = await enforcer.check_and_reserve(tenant_id, "expense")

    assert decision.allowed is False
    assert decision.current_usage == 50
    assert decision.limit == 50
    assert decision.suggested_tier == "starter"
    assert "50 expenses per month" in (decision.message or "")


@pytest.mark.asyncio
async def test_unlimited_expenses_roll_over_stale_counter(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="enterprise", expenses=900, reset_date=NOV_1)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    assert (await enforcer.check_and_reserve(tenant_id, "expense")).allowed is True

    row = store.row(tenant_id)
    assert row.current_month_expenses == 1
    assert row.expense_counter_reset_date == DEC_1


@pytest.mark.asyncio
async def test_downgraded_tenant_over_limit_is_blocked_without_trimming(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="starter", projects=8)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decision = await enforcer.check_and_reserve(tenant_id, "project")

    assert decision.allowed is False
    assert decision.current_usage == 8
    assert store.row(tenant_id).current_projects == 8


@pytest.mark.asyncio
async def test_inactive_subscription_is_denied_without_touching_counters(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="professional", status="canceled")
    enforcer = QuotaEnforcer(store, catalog, clock=clock, inactive_statuses={"canceled"})

    decision = await enforcer.check_and_reserve(tenant_id, "project")

    assert decision.allowed is False
    assert decision.reason == SUBSCRIPTION_INACTIVE
    assert store.row(tenant_id).current_projects == 0
    assert store.calls == ["get_usage"]


@pytest.mark.asyncio
async def test_inactive_status_ignored_when_policy_disabled(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="professional", status="canceled")
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    assert (await enforcer.check_and_reserve(tenant_id, "project")).allowed is True


@pytest.mark.asyncio
async def test_unknown_tier_fails_closed_to_most_restrictive(
    store, catalog, clock, caplog: pytest.LogCaptureFixture
) -> None:
    tenant_id = store.add_tenant(tier="platinum", projects=3)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    with caplog.at_level(logging.ERROR, logger="src.core.quota.tiers"):
        decision = await enforcer.check_and_reserve(tenant_id, "project")

    assert decision.allowed is False
    assert decision.limit == 3
    assert "platinum" in caplog.text


@pytest.mark.asyncio
async def test_invalid_resource_type_fails_fast(store, catalog, clock) -> None:
    tenant_id = store.add_tenant()
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    with pytest.raises(InvalidResourceTypeError):
        await enforcer.check_and_reserve(tenant_id, "invoice")
    assert store.calls == []


@pytest.mark.asyncio
async def test_non_positive_amount_is_rejected(store, catalog, clock) -> None:
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    with pytest.raises(ValueError):
        await enforcer.check_and_reserve(uuid4(), "project", amount=0)


@pytest.mark.asyncio
async def test_missing_tenant_raises(store, catalog, clock) -> None:
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    with pytest.raises(TenantNotFoundError):
        await enforcer.check_and_reserve(uuid4(), "project")


@pytest.mark.asyncio
async def test_store_failure_propagates_as_unavailable(store, catalog, clock) -> None:
    tenant_id = store.add_tenant()
    store.fail_with = StoreUnavailableError(tenant_id, "project")
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    with pytest.raises(StoreUnavailableError):
        await enforcer.check_and_reserve(tenant_id, "project")


@pytest.mark.asyncio
async def test_denied_decision_raises_limit_reached(store, catalog, clock) -> None:
    tenant_id = store.add_tenant(tier="trial", users=1)
    enforcer = QuotaEnforcer(store, catalog, clock=clock)

    decision = await enforcer.check_and_reserve(tenant_id, "user")

    with pytest.raises(LimitReachedError) as exc:
        decision.raise_for_denial()
    assert exc.value.decision.payload() == {
        "reason": LIMIT_REACHED,
        "message": decision.message,
        "resource": "user",
        "current_usage": 1,
        "limit": 1,
        "suggested_tier": "starter",
    }
