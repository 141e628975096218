# app/plans/catalog.py

from __future__ import annotations

from app.core.config import env

FREE = "free"
STARTER = "starter"
PRO = "pro"
ENTERPRISE = "enterprise"

PLAN_ORDER = [FREE, STARTER, PRO, ENTERPRISE]

# (env var, default price id) per plan; read on every lookup
PRICE_IDS = {
    STARTER: [
        ("STRIPE_PRICE_STARTER_MONTHLY", "price_1RcnoUQiUhrwJo9CamPZGsh1"),
        ("STRIPE_PRICE_STARTER_YEARLY", "price_1RcnosQiUhrwJo9CzIMCgiea"),
    ],
    PRO: [
        ("STRIPE_PRICE_PRO_MONTHLY", "price_1RcnpzQiUhrwJo9CVz7Wsug6"),
        ("STRIPE_PRICE_PRO_YEARLY", "price_1RcnqKQiUhrwJo9CCdhvD8Ep"),
    ],
    ENTERPRISE: [
        ("STRIPE_PRICE_ENTERPRISE_MONTHLY", ""),
        ("STRIPE_PRICE_ENTERPRISE_YEARLY", ""),
    ],
}

PLANS = {
    FREE: dict(name="Free", monthly=0, yearly=0, max_products=10, team_members=0),
    STARTER: dict(name="Starter", monthly=29, yearly=290, max_products=100, team_members=1),
    PRO: dict(name="Professional", monthly=99, yearly=990, max_products=1000, team_members=5),
    ENTERPRISE: dict(name="Enterprise", monthly=299, yearly=2990, max_products=None, team_members=None),
}


def price_ids(plan: str) -> list[str]:
    out = []
    for key, default in PRICE_IDS.get(plan, []):
        value = env(key, default=default)
        if value:
            out.append(value)
    return out


def plan_for_price(price_id: str | None) -> str:
    """
    Infer the plan tier from a Stripe price id.
    Missing, "NULL" and unknown ids are the free tier.
    """
    p = (price_id or "").strip()
    if not p or p.upper() == "NULL":
        return FREE
    for plan in (STARTER, PRO, ENTERPRISE):
        if p in price_ids(plan):
            return plan
    return FREE


def describe_plans() -> list[dict]:
    return [
        {"id": plan, **PLANS[plan], "priceIds": price_ids(plan)}
        for plan in PLAN_ORDER
    ]
