# app/documents/routes.py

import logging
import re

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.auth.deps import Principal, requires_page
from app.db.session import get_db
from app.documents.models import OrderInvoice, OrderPackingList
from app.documents.pdf import (
    build_certificate_pdf,
    build_invoice_pdf,
    build_packing_list_pdf,
    invoice_totals,
    packing_summary,
)
from app.plans.limits import DOCUMENTS
from app.shopify.client import ShopifyAPIError, ShopifyAuthError, get_shopify_client_factory
from app.shopify.shops import get_owner_shop

log = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class InvoiceBody(BaseModel):
    orderId: str


class PackingListBody(BaseModel):
    orderId: str
    netWeight: float | None = None
    grossWeight: float | None = None


class CertificateBody(BaseModel):
    productId: str
    name: str
    vendor: str = ""
    productType: str = ""
    countryOfOrigin: str | None = None


def _pdf(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _safe_name(s: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", s or "")


def _shop_client(db: Session, principal: Principal, factory):
    shop = get_owner_shop(db, principal.owner.id)
    return shop, factory(shop.shopify_domain, shop.shopify_access_token)


def _fetch(fn, *args):
    try:
        return fn(*args)
    except (ShopifyAPIError, ShopifyAuthError) as e:
        log.warning("shopify request failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e) or "Shopify request failed")


@router.post("/invoice")
def invoice(
    body: InvoiceBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(DOCUMENTS)),
    factory=Depends(get_shopify_client_factory),
):
    shop, client = _shop_client(db, principal, factory)
    order = _fetch(client.get_order, body.orderId)
    shop_info = _fetch(client.get_shop_info)

    content = build_invoice_pdf(order=order, shop=shop_info)

    number = str(order.get("order_number") or order.get("id") or body.orderId)
    db.add(
        OrderInvoice(
            user_id=principal.owner.id,
            shopify_domain=shop.shopify_domain,
            order_id=str(body.orderId),
            order_number=number,
            total=str(invoice_totals(order)["total"]),
            currency=order.get("currency"),
        )
    )
    db.commit()
    return _pdf(content, f"Invoice_{_safe_name(number)}.pdf")


@router.post("/packing-list")
def packing_list(
    body: PackingListBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(DOCUMENTS)),
    factory=Depends(get_shopify_client_factory),
):
    if body.netWeight is None or body.grossWeight is None:
        raise HTTPException(status_code=400, detail="Please enter both Net and Gross weight.")

    shop, client = _shop_client(db, principal, factory)
    order = _fetch(client.get_order, body.orderId)
    shop_info = _fetch(client.get_shop_info)

    try:
        summary = packing_summary(order, body.netWeight, body.grossWeight)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    content = build_packing_list_pdf(
        order=order,
        shop=shop_info,
        net_weight=body.netWeight,
        gross_weight=body.grossWeight,
    )

    number = str(order.get("order_number") or order.get("id") or body.orderId)
    db.add(
        OrderPackingList(
            user_id=principal.owner.id,
            shopify_domain=shop.shopify_domain,
            order_id=str(body.orderId),
            order_number=number,
            net_weight=summary["net_weight_kg"],
            gross_weight=summary["gross_weight_kg"],
            total_units=summary["total_units"],
        )
    )
    db.commit()
    return _pdf(content, f"PackingList_{_safe_name(number)}.pdf")


@router.post("/certificate-of-origin")
def certificate_of_origin(
    body: CertificateBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(DOCUMENTS)),
    factory=Depends(get_shopify_client_factory),
):
    _shop, client = _shop_client(db, principal, factory)
    shop_info = _fetch(client.get_shop_info)

    product = {
        "id": body.productId,
        "name": body.name,
        "vendor": body.vendor,
        "type": body.productType,
    }
    content = build_certificate_pdf(
        product=product,
        shop=shop_info,
        country_of_origin=body.countryOfOrigin,
    )
    return _pdf(content, f"Certificate_of_Origin_{_safe_name(body.name)}.pdf")


@router.get("")
def list_documents(
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(DOCUMENTS)),
):
    invoices = (
        db.query(OrderInvoice)
        .filter(OrderInvoice.user_id == principal.owner.id)
        .order_by(desc(OrderInvoice.id))
        .all()
    )
    packing = (
        db.query(OrderPackingList)
        .filter(OrderPackingList.user_id == principal.owner.id)
        .order_by(desc(OrderPackingList.id))
        .all()
    )
    return {
        "invoices": [
            {
                "id": i.id,
                "order_id": i.order_id,
                "order_number": i.order_number,
                "total": i.total,
                "currency": i.currency,
                "created_at": i.created_at.isoformat() if i.created_at else None,
            }
            for i in invoices
        ],
        "packing_lists": [
            {
                "id": p.id,
                "order_id": p.order_id,
                "order_number": p.order_number,
                "net_weight": p.net_weight,
                "gross_weight": p.gross_weight,
                "total_units": p.total_units,
                "created_at": p.created_at.isoformat() if p.created_at else None,
            }
            for p in packing
        ],
    }
