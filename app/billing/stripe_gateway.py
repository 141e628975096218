from __future__ import annotations

import json
from typing import Any, Dict, Optional

import stripe

from app.core.config import stripe_secret_key

SIGNATURE_TOLERANCE_SEC = 300


class WebhookVerificationError(Exception):
    pass


class StripeLookupError(Exception):
    """Customer/subscription could not be read back from Stripe."""
    pass


def verify_webhook(payload: bytes, sig_header: str | None, secret: str) -> Dict[str, Any]:
    """
    Verify the stripe-signature header against the raw body, then parse it.
    The body is never re-encoded before verification.
    """
    if not secret:
        raise WebhookVerificationError("Webhook secret is not configured")
    if not sig_header:
        raise WebhookVerificationError("Missing stripe-signature header")

    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise WebhookVerificationError("Payload is not valid UTF-8") from e

    try:
        stripe.WebhookSignature.verify_header(text, sig_header, secret, SIGNATURE_TOLERANCE_SEC)
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError(str(e)) from e

    try:
        event = json.loads(text)
    except ValueError as e:
        raise WebhookVerificationError("Invalid JSON payload") from e

    if not isinstance(event, dict) or not event.get("type"):
        raise WebhookVerificationError("Payload is not a Stripe event")
    return event


def _first_price_id(items: Any) -> Optional[str]:
    try:
        data = items["data"] if items is not None else None
        if not data:
            return None
        return data[0]["price"]["id"]
    except (KeyError, IndexError, TypeError):
        return None


class StripeGateway:
    """The Stripe calls this backend makes, behind one object so tests can swap it."""

    def __init__(self, api_key: str):
        self.api_key = api_key

    def customer_email(self, customer_id: str) -> Optional[str]:
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise StripeLookupError(f"Failed to retrieve customer: {e}") from e
        if getattr(customer, "deleted", False):
            return None
        return getattr(customer, "email", None)

    def subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            sub = stripe.Subscription.retrieve(subscription_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise StripeLookupError(f"Failed to retrieve subscription: {e}") from e

        customer = sub["customer"]
        if not isinstance(customer, str):
            customer = customer["id"]
        return {
            "id": sub["id"],
            "status": sub["status"],
            "customer": customer,
            "price_id": _first_price_id(sub["items"]),
        }

    def create_checkout_session(self, *, price_id: str, email: str, origin: str) -> str:
        session = stripe.checkout.Session.create(
            api_key=self.api_key,
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            mode="subscription",
            customer_email=email,
            metadata={"price_id": price_id},
            success_url=origin + "/dashboard?session_id={CHECKOUT_SESSION_ID}",
            cancel_url=origin + "/billing",
        )
        return session.url


def get_stripe_gateway() -> StripeGateway:
    return StripeGateway(stripe_secret_key())
