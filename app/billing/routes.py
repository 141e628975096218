import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
import stripe

from app.auth.deps import Principal, get_current_principal
from app.billing.stripe_gateway import StripeGateway, get_stripe_gateway
from app.core.ratelimit import limiter
from app.plans.catalog import describe_plans

log = logging.getLogger(__name__)

router = APIRouter(tags=["billing"])


class CheckoutBody(BaseModel):
    priceId: str = ""
    email: str = ""


@router.post("/stripe/checkout")
@limiter.limit("10/minute")
def create_checkout_session(
    request: Request,
    body: CheckoutBody,
    gateway: StripeGateway = Depends(get_stripe_gateway),
):
    if not body.priceId or not body.email:
        raise HTTPException(status_code=400, detail="Missing priceId or email")
    if not gateway.api_key:
        raise HTTPException(status_code=500, detail="Stripe not configured")

    origin = request.headers.get("origin") or request.url.scheme + "://" + request.url.netloc
    try:
        url = gateway.create_checkout_session(
            price_id=body.priceId,
            email=body.email.strip().lower(),
            origin=origin.rstrip("/"),
        )
    except stripe.StripeError as e:
        log.error("error creating Stripe session: %s", e)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return {"url": url}


@router.get("/billing/status")
def status(principal: Principal = Depends(get_current_principal)):
    return {
        "priceId": principal.owner.price_id,
        "plan": principal.plan,
        "hasAccess": bool(principal.owner.has_access),
    }


@router.get("/billing/plans")
def plans():
    return {"plans": describe_plans()}
