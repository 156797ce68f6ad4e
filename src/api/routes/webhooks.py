from __future__ import annotations

import json
import logging

import redis.asyncio as redis
import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.db import get_db_session
from src.core.quota import TierCatalog, UnknownTierError, get_tier_catalog
from src.models.tenant import Tenant
from src.schemas.billing import BillingWebhookResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

SUBSCRIPTION_EVENTS = {"customer.subscription.created", "customer.subscription.updated"}
HANDLED_EVENTS = SUBSCRIPTION_EVENTS | {
    "customer.subscription.deleted",
    "invoice.payment_failed",
    "invoice.paid",
}

# Provider subscription states folded into the four states the product knows.
_STATUS_MAP = {
    "trialing": "trialing",
    "active": "active",
    "past_due": "past_due",
    "unpaid": "past_due",
    "incomplete": "past_due",
    "paused": "past_due",
    "canceled": "canceled",
    "incomplete_expired": "canceled",
}


def _event_object(payload: dict) -> dict:
    return (payload.get("data") or {}).get("object") or {}


def _metadata(data: dict) -> dict:
    metadata = dict(data.get("metadata") or {})
    # Invoices carry the subscription's metadata one level down.
    for details in (
        data.get("subscription_details"),
        ((data.get("parent") or {}).get("subscription_details")),
    ):
        if details:
            for key, value in (details.get("metadata") or {}).items():
                metadata.setdefault(key, value)
    return metadata


def _extract_org_id(payload: dict) -> str | None:
    data = _event_object(payload)
    metadata = _metadata(data)
    return (
        metadata.get("clerk_org_id")
        or metadata.get("org_id")
        or data.get("clerk_org_id")
        or data.get("org_id")
    )


def _extract_price_id(data: dict) -> str | None:
    items = ((data.get("items") or {}).get("data")) or []
    if not items:
        return None
    price = items[0].get("price") or {}
    return price.get("id")


def _extract_tier(payload: dict, catalog: TierCatalog) -> str | None:
    data = _event_object(payload)
    metadata = _metadata(data)
    raw = metadata.get("subscription_tier") or metadata.get("tier")
    if raw:
        return str(raw).strip().lower()
    return catalog.tier_for_price(_extract_price_id(data))


def _extract_status(payload: dict) -> str:
    event_type = payload.get("type", "")
    if event_type == "customer.subscription.deleted":
        return "canceled"
    if event_type == "invoice.payment_failed":
        return "past_due"
    if event_type == "invoice.paid":
        return "active"

    raw = str(_event_object(payload).get("status") or "active").lower()
    return _STATUS_MAP.get(raw, "active")


async def _publish_subscription_event(tenant_id: str, tier: str, subscription_status: str) -> None:
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        await redis_client.set(f"tenant:subscription_status:{tenant_id}", subscription_status)
        await redis_client.publish(
            f"billing:tenant_subscription:{tenant_id}",
            json.dumps({"tier": tier, "status": subscription_status}),
        )
    except (RedisError, OSError):
        # The database update already committed; subscribers resync from it.
        logger.exception("Failed to publish subscription event tenant=%s", tenant_id)
    finally:
        await redis_client.aclose()


def _verify_and_parse_event(raw_body: bytes, stripe_signature: str | None) -> dict:
    if settings.stripe_webhook_secret and not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Stripe signature",
        )

    if stripe_signature and settings.stripe_webhook_secret:
        try:
            stripe.Webhook.construct_event(
                payload=raw_body,
                sig_header=stripe_signature,
                secret=settings.stripe_webhook_secret,
            )
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid Stripe signature",
            ) from exc

    try:
        return json.loads(raw_body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook payload",
        ) from exc


@router.post("/billing", response_model=BillingWebhookResponse)
async def billing_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    catalog: TierCatalog = Depends(get_tier_catalog),
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
) -> BillingWebhookResponse:
    raw_body = await request.body()
    payload = _verify_and_parse_event(raw_body, stripe_signature)
    event_type = payload.get("type", "unknown")

    if event_type not in HANDLED_EVENTS:
        return BillingWebhookResponse(received=True, event_type=event_type, tenant_id=None, updated=False)

    org_id = _extract_org_id(payload)
    if not org_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook payload missing org identifier",
        )

    tier_name: str | None = None
    if event_type in SUBSCRIPTION_EVENTS:
        tier_name = _extract_tier(payload, catalog)
        if tier_name is not None:
            try:
                tier_name = catalog.lookup(tier_name).name
            except UnknownTierError as exc:
                logger.error("Billing webhook refused unknown tier event=%s org=%s: %s", event_type, org_id, exc)
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Unknown subscription tier",
                ) from exc

    tenant = await session.scalar(select(Tenant).where(Tenant.clerk_org_id == org_id))
    if tenant is None:
        logger.warning("Billing webhook for unknown org=%s event=%s", org_id, event_type)
        return BillingWebhookResponse(received=True, event_type=event_type, tenant_id=None, updated=False)

    # Counters are left alone: a downgrade only blocks new creations.
    if tier_name is not None:
        tenant.subscription_tier = tier_name
    tenant.subscription_status = _extract_status(payload)
    await session.commit()

    logger.info(
        "Subscription updated tenant=%s event=%s tier=%s status=%s",
        tenant.id,
        event_type,
        tenant.subscription_tier,
        tenant.subscription_status,
    )
    await _publish_subscription_event(str(tenant.id), tenant.subscription_tier, tenant.subscription_status)

    return BillingWebhookResponse(
        received=True,
        event_type=event_type,
        tenant_id=str(tenant.id),
        updated=True,
    )
