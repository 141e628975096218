# app/esg/routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.auth.deps import Principal, requires_page
from app.db.session import get_db
from app.esg.models import EsgRequest, ProductEsgScore
from app.esg.provider import EsgProviderError, get_score_fetcher
from app.esg.scoring import clamp_score, risk_level, summarize
from app.plans.limits import ESG
from app.shopify.client import ShopifyAPIError, ShopifyAuthError, get_shopify_client_factory
from app.shopify.shops import get_owner_shop

log = logging.getLogger(__name__)

router = APIRouter(prefix="/shopify/esg", tags=["esg"])


class ProcessBody(BaseModel):
    productIds: list[str] | None = None


def _row_out(r: ProductEsgScore) -> dict:
    return {
        "productId": r.product_id,
        "productTitle": r.product_title,
        "vendor": r.vendor,
        "vendorSymbol": r.vendor_symbol,
        "esgScore": r.esg_score,
        "environmentScore": r.environment_score,
        "socialScore": r.social_score,
        "governanceScore": r.governance_score,
        "riskLevel": r.risk_level,
        "lastUpdated": r.updated_at.isoformat() if r.updated_at else None,
    }


def _store_score(db: Session, domain: str, product: dict, s: dict) -> ProductEsgScore:
    pid = str(s.get("product_id") or product.get("id"))
    row = (
        db.query(ProductEsgScore)
        .filter(ProductEsgScore.shopify_domain == domain, ProductEsgScore.product_id == pid)
        .first()
    )
    if not row:
        row = ProductEsgScore(shopify_domain=domain, product_id=pid)
        db.add(row)

    row.product_title = product.get("title")
    row.vendor = product.get("vendor")
    row.vendor_symbol = s.get("vendor_symbol")
    row.esg_score = clamp_score(s.get("esg_score"))
    row.environment_score = clamp_score(s.get("environment_score"))
    row.social_score = clamp_score(s.get("social_score"))
    row.governance_score = clamp_score(s.get("governance_score"))
    row.risk_level = risk_level(row.esg_score)
    return row


@router.post("/process")
def process(
    body: ProcessBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ESG)),
    factory=Depends(get_shopify_client_factory),
    fetch_scores=Depends(get_score_fetcher),
):
    shop = get_owner_shop(db, principal.owner.id)
    client = factory(shop.shopify_domain, shop.shopify_access_token)

    try:
        products = client.list_products(limit=250).get("products") or []
    except (ShopifyAPIError, ShopifyAuthError) as e:
        log.warning("shopify request failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch products")

    if body.productIds:
        wanted = {str(p) for p in body.productIds}
        products = [p for p in products if str(p.get("id")) in wanted]

    batch = [
        {"id": str(p.get("id")), "title": p.get("title"), "vendor": p.get("vendor")}
        for p in products
    ]
    by_id = {p["id"]: p for p in batch}

    req = EsgRequest(
        user_id=principal.owner.id,
        shopify_domain=shop.shopify_domain,
        requested=len(batch),
        status="done",
    )

    try:
        scores = fetch_scores(batch)
    except EsgProviderError as e:
        log.warning("esg scoring failed: %s", e)
        req.status = "failed"
        req.error = str(e)[:500]
        db.add(req)
        db.commit()
        raise HTTPException(status_code=500, detail=str(e))

    stored = 0
    for s in scores:
        product = by_id.get(str(s.get("product_id")))
        if product is None:
            continue
        _store_score(db, shop.shopify_domain, product, s)
        stored += 1

    req.scored = stored
    db.add(req)
    db.commit()

    return {"success": True, "requested": len(batch), "processed": stored}


@router.post("/data")
def data(
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ESG)),
):
    shop = get_owner_shop(db, principal.owner.id)
    rows = (
        db.query(ProductEsgScore)
        .filter(ProductEsgScore.shopify_domain == shop.shopify_domain)
        .order_by(ProductEsgScore.product_id.asc())
        .all()
    )
    return {"esgData": [_row_out(r) for r in rows]}


@router.post("/summary")
def summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ESG)),
):
    shop = get_owner_shop(db, principal.owner.id)
    rows = (
        db.query(ProductEsgScore)
        .filter(ProductEsgScore.shopify_domain == shop.shopify_domain)
        .all()
    )
    return summarize(rows)
