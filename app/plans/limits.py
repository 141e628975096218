from __future__ import annotations

from fastapi import HTTPException

from app.plans.catalog import FREE, STARTER, PRO, ENTERPRISE, plan_for_price

DASHBOARD = "/dashboard"
PRODUCTS = "/products"
HS_CODES = "/hs-codes"
DOCUMENTS = "/documents"
LANDED_COST = "/landed-cost"
LANDED_COST_HISTORY = "/landed-cost-history"
ESG = "/esg"
BILLING = "/billing"
ADMIN = "/admin"

LOGIN = "/login"

MENU = [
    dict(path=PRODUCTS, label="Products"),
    dict(path=HS_CODES, label="HS Codes"),
    dict(path=DOCUMENTS, label="Documents"),
    dict(path=LANDED_COST, label="Landed Cost"),
    dict(path=ESG, label="ESG Risk"),
    dict(path=BILLING, label="Billing"),
    dict(path=ADMIN, label="Admin"),
]

ROLE_PAGES = {
    "admin": [PRODUCTS, HS_CODES, DOCUMENTS, LANDED_COST, ESG, BILLING, ADMIN],
    "manager": [PRODUCTS, HS_CODES, DOCUMENTS, LANDED_COST, ESG],
    "analyst": [HS_CODES, DOCUMENTS, ESG],
    "viewer": [DOCUMENTS],
}

MENU_BY_PLAN = {
    FREE: [PRODUCTS, BILLING],
    STARTER: [PRODUCTS, HS_CODES, DOCUMENTS, BILLING, ADMIN],
    PRO: [m["path"] for m in MENU],
    ENTERPRISE: [m["path"] for m in MENU],
}

PAID = (STARTER, PRO, ENTERPRISE)
PRO_UP = (PRO, ENTERPRISE)

# page -> (allowed roles or None, allowed plans or None)
ROUTE_GATES = {
    DASHBOARD: (None, None),
    PRODUCTS: (("admin", "manager"), None),
    HS_CODES: (("admin", "manager", "analyst"), PAID),
    DOCUMENTS: (("admin", "manager", "analyst", "viewer"), PAID),
    LANDED_COST: (("admin", "manager"), PRO_UP),
    LANDED_COST_HISTORY: (("admin", "manager"), PRO_UP),
    ESG: (("admin", "manager", "analyst"), PRO_UP),
    BILLING: (("admin",), None),
    ADMIN: (("admin",), PAID),
}


def effective_plan(price_id: str | None, has_access: bool) -> str:
    # a revoked subscription keeps its price id but loses paid features
    if not has_access:
        return FREE
    return plan_for_price(price_id)


def _role_allowed(user_type: str | None, role: str | None, roles) -> bool:
    if roles is None:
        return True
    if user_type == "admin":
        return "admin" in roles
    if user_type == "sub_user":
        r = (role or "").strip().lower()
        return bool(r) and r in roles
    return False


def allowed_pages(user_type: str | None, role: str | None) -> list[str]:
    if user_type == "admin":
        return list(ROLE_PAGES["admin"])
    r = (role or "").strip().lower()
    if user_type == "sub_user" and r in ROLE_PAGES:
        return list(ROLE_PAGES[r])
    return []


def check_access(
    page: str,
    *,
    signed_in: bool,
    user_type: str | None = None,
    role: str | None = None,
    plan: str = FREE,
) -> str | None:
    """
    None when the page is allowed, else where to send the user:
      signed out -> /login, plan not allowed -> /billing, role not allowed -> /dashboard
    """
    if not signed_in:
        return LOGIN

    roles, plans = ROUTE_GATES.get(page, (None, None))

    if plans is not None and plan not in plans:
        return BILLING

    if not _role_allowed(user_type, role, roles):
        return DASHBOARD

    return None


def navigation_menu(user_type: str | None, role: str | None, plan: str) -> list[dict]:
    visible = MENU_BY_PLAN.get(plan, MENU_BY_PLAN[FREE])
    allowed = allowed_pages(user_type, role)
    return [dict(m) for m in MENU if m["path"] in visible and m["path"] in allowed]


def require_page(page: str, *, user_type: str, role: str | None, plan: str):
    redirect = check_access(page, signed_in=True, user_type=user_type, role=role, plan=plan)
    if redirect == BILLING:
        raise HTTPException(status_code=402, detail=f"Your plan does not include {page}")
    if redirect is not None:
        raise HTTPException(status_code=403, detail=f"Your role cannot access {page}")
