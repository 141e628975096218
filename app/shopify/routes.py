# app/shopify/routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.shopify.client import ShopifyAPIError, ShopifyAuthError, get_shopify_client_factory

log = logging.getLogger(__name__)

router = APIRouter(prefix="/shopify", tags=["shopify"])


class ShopCredentials(BaseModel):
    shop: str = ""
    accessToken: str = ""


class OrderDetailsBody(ShopCredentials):
    orderId: str = ""


def _client(body: ShopCredentials, factory):
    if not body.shop or not body.accessToken:
        raise HTTPException(status_code=400, detail="Missing shop or access token")
    try:
        return factory(body.shop, body.accessToken)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _upstream(e: Exception):
    log.warning("shopify request failed: %s", e)
    raise HTTPException(status_code=500, detail=str(e) or "Shopify request failed")


@router.post("/products")
def products(body: ShopCredentials, factory=Depends(get_shopify_client_factory)):
    client = _client(body, factory)
    try:
        return client.list_products(limit=5)
    except (ShopifyAPIError, ShopifyAuthError) as e:
        _upstream(e)


@router.post("/shop-info")
def shop_info(body: ShopCredentials, factory=Depends(get_shopify_client_factory)):
    client = _client(body, factory)
    try:
        return {"shop": client.get_shop_info()}
    except (ShopifyAPIError, ShopifyAuthError) as e:
        _upstream(e)


@router.post("/orders/details")
def order_details(body: OrderDetailsBody, factory=Depends(get_shopify_client_factory)):
    if not body.orderId:
        raise HTTPException(status_code=400, detail="Missing orderId")
    client = _client(body, factory)
    try:
        return {"order": client.get_order(body.orderId)}
    except (ShopifyAPIError, ShopifyAuthError) as e:
        _upstream(e)
