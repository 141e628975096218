# app/billing/webhook.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.billing.models import StripeEvent
from app.billing.stripe_gateway import (
    StripeGateway,
    StripeLookupError,
    WebhookVerificationError,
    get_stripe_gateway,
    verify_webhook,
)
from app.core.config import stripe_webhook_secret
from app.db.session import get_db
from app.users.models import User

log = logging.getLogger(__name__)

router = APIRouter(tags=["billing"])

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
PAYMENT_FAILED = "invoice.payment_failed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"


@dataclass
class Outcome:
    action: str  # updated | skipped | ignored | duplicate
    rows: int = 0
    reason: str = ""


def _checkout_price_id(session: dict) -> Optional[str]:
    # line_items only appear when the session was expanded; metadata is set at checkout creation
    items = ((session.get("line_items") or {}).get("data")) or []
    if items:
        price = (items[0] or {}).get("price") or {}
        if price.get("id"):
            return price["id"]
    return (session.get("metadata") or {}).get("price_id") or None


def _apply(db: Session, event: dict, match, values: dict, customer_id: str | None) -> Outcome:
    """
    One conditional UPDATE plus the event record, committed together.
    Rows whose last applied event is newer than this one are left alone.
    """
    created = event.get("created")
    q = db.query(User).filter(match)
    if created is not None:
        q = q.filter(or_(User.stripe_event_created.is_(None), User.stripe_event_created <= created))
        values = {**values, User.stripe_event_created: created}

    rows = q.update(values, synchronize_session=False)

    if event.get("id"):
        db.add(
            StripeEvent(
                stripe_event_id=event["id"],
                event_type=event["type"],
                customer_id=customer_id,
                stripe_created=created,
                rows_updated=rows,
            )
        )
    db.commit()

    if rows == 0:
        log.info("%s: no matching user (or a newer event already applied)", event["type"])
    return Outcome("updated", rows=rows)


def _event_recorded(db: Session, event_id: str) -> bool:
    return db.query(StripeEvent.id).filter(StripeEvent.stripe_event_id == event_id).first() is not None


def handle_event(db: Session, gateway: StripeGateway, event: dict[str, Any]) -> Outcome:
    """
    Reconcile one verified Stripe event into the users table.
    Raises SQLAlchemyError when the write fails; everything else is a skip.
    """
    etype = event.get("type")
    data = ((event.get("data") or {}).get("object")) or {}

    log.info("handling stripe event %s (%s)", etype, event.get("id"))

    if etype not in (
        CHECKOUT_COMPLETED,
        PAYMENT_SUCCEEDED,
        PAYMENT_FAILED,
        SUBSCRIPTION_UPDATED,
        SUBSCRIPTION_DELETED,
    ):
        log.info("unhandled event type %s", etype)
        return Outcome("ignored")

    if event.get("id") and (
        db.query(StripeEvent).filter(StripeEvent.stripe_event_id == event["id"]).first()
    ):
        log.info("event %s already applied, skipping", event["id"])
        return Outcome("duplicate")

    if etype == CHECKOUT_COMPLETED:
        customer_id = data.get("customer")
        if not customer_id:
            log.info("no customer id in %s, skipping", etype)
            return Outcome("skipped", reason="no customer")

        try:
            email = gateway.customer_email(customer_id)
        except StripeLookupError as e:
            log.warning(str(e))
            return Outcome("skipped", reason="customer lookup failed")
        if not email:
            log.warning("customer %s has no email, skipping", customer_id)
            return Outcome("skipped", reason="customer has no email")

        values = {
            User.price_id: _checkout_price_id(data),
            User.has_access: True,
            User.customer_id: customer_id,
            User.session_id: data.get("id"),
        }
        return _apply(db, event, User.email == email.lower(), values, customer_id)

    if etype in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
        customer_id = data.get("customer")
        if not customer_id:
            log.info("no customer id in %s, skipping", etype)
            return Outcome("skipped", reason="no customer")

        values = {User.has_access: etype == PAYMENT_SUCCEEDED}
        return _apply(db, event, User.customer_id == customer_id, values, customer_id)

    # subscription updated / deleted: trust Stripe's current view, not the payload
    subscription_id = data.get("id")
    if not subscription_id:
        log.info("no subscription id in %s, skipping", etype)
        return Outcome("skipped", reason="no subscription")

    try:
        sub = gateway.subscription(subscription_id)
    except StripeLookupError as e:
        log.warning(str(e))
        return Outcome("skipped", reason="subscription lookup failed")

    values = {
        User.has_access: sub.get("status") == "active",
        User.price_id: sub.get("price_id"),
    }
    return _apply(db, event, User.customer_id == sub.get("customer"), values, sub.get("customer"))


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    try:
        event = verify_webhook(payload, sig_header, stripe_webhook_secret())
    except WebhookVerificationError as e:
        log.warning("webhook signature verification failed: %s", e)
        return JSONResponse(status_code=400, content={"error": f"Webhook Error: {e}"})

    try:
        outcome = await run_in_threadpool(handle_event, db, gateway, event)
    except IntegrityError as e:
        db.rollback()
        # only a concurrent delivery of the same event id counts as a duplicate
        if event.get("id") and await run_in_threadpool(_event_recorded, db, event["id"]):
            log.info("event %s recorded concurrently, treating as duplicate", event["id"])
            return {"received": True, "duplicate": True}
        log.error("database update failed for %s: %s", event.get("type"), e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    except SQLAlchemyError as e:
        db.rollback()
        log.error("database update failed for %s: %s", event.get("type"), e)
        return JSONResponse(status_code=500, content={"error": str(e)})

    log.info(
        "stripe event %s: %s rows=%d %s",
        event.get("id"),
        outcome.action,
        outcome.rows,
        outcome.reason,
    )
    if outcome.action == "duplicate":
        return {"received": True, "duplicate": True}
    return {"received": True}
