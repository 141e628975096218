"""
Shopify Admin API client (REST).
Thin, synchronous wrapper: every call is one request to the shop.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

API_VERSION = "2023-10"
DEFAULT_TIMEOUT = 10.0

SHOP_DOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")

OAUTH_SCOPES = "read_products,write_products,read_orders,write_orders"


class ShopifyAuthError(Exception):
    """Raised when the shop rejects the token or the OAuth code"""
    pass


class ShopifyAPIError(Exception):
    """Raised when an API request fails"""
    pass


def _json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise ShopifyAPIError(f"Shopify returned non-JSON response ({resp.status_code})") from e


def normalize_shop_domain(raw: str | None) -> str:
    """
    Accept "store.myshopify.com" or "https://store.myshopify.com/...".
    Anything that is not a *.myshopify.com host is rejected before a request is made.
    """
    shop = (raw or "").strip().lower()
    shop = shop.replace("https://", "").replace("http://", "")
    shop = shop.split("/")[0]
    if not SHOP_DOMAIN_RE.match(shop):
        raise ValueError("Invalid Shopify store domain (expected your-store.myshopify.com)")
    return shop


def authorize_url(shop: str, api_key: str, redirect_uri: str, state: str) -> str:
    """Where the merchant approves the app; Shopify then calls redirect_uri with ?code&shop&state."""
    query = urlencode(
        {
            "client_id": api_key,
            "scope": OAUTH_SCOPES,
            "redirect_uri": redirect_uri,
            "state": state,
        }
    )
    return f"https://{normalize_shop_domain(shop)}/admin/oauth/authorize?{query}"


class ShopifyClient:
    def __init__(self, shop_domain: str, access_token: str, *, timeout: float = DEFAULT_TIMEOUT):
        self.shop_domain = normalize_shop_domain(shop_domain)
        self.access_token = (access_token or "").strip()
        if not self.access_token:
            raise ValueError("Missing shop access token")
        self.base_url = f"https://{self.shop_domain}/admin/api/{API_VERSION}"
        self.timeout = timeout
        self.headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    @classmethod
    def exchange_code_for_token(cls, shop: str, code: str, api_key: str, api_secret: str) -> Dict[str, Any]:
        """POST /admin/oauth/access_token; returns Shopify's JSON ({access_token, scope})."""
        shop = normalize_shop_domain(shop)
        payload = {"client_id": api_key, "client_secret": api_secret, "code": code}
        try:
            with httpx.Client(timeout=DEFAULT_TIMEOUT) as client:
                resp = client.post(f"https://{shop}/admin/oauth/access_token", json=payload)
        except httpx.RequestError as e:
            raise ShopifyAPIError(f"Connection error: {e}") from e

        if resp.status_code in (400, 401, 403):
            raise ShopifyAuthError("Failed to exchange code for access token")
        if not (200 <= resp.status_code < 300):
            raise ShopifyAPIError(f"Failed to exchange code for access token: {resp.status_code} {resp.text[:300]}")

        data = _json(resp)
        if not isinstance(data, dict) or not data.get("access_token"):
            raise ShopifyAPIError("Shopify returned no access_token")
        return data

    def _get(self, path: str, params: Optional[dict] = None) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=False) as client:
                resp = client.get(f"{self.base_url}{path}", headers=self.headers, params=params)
        except httpx.TimeoutException as e:
            raise ShopifyAPIError("Connection timeout. Please try again.") from e
        except httpx.RequestError as e:
            raise ShopifyAPIError(f"Connection error: {e}") from e

        if resp.status_code == 401:
            raise ShopifyAuthError("Invalid access token")
        if not (200 <= resp.status_code < 300):
            # forward upstream text
            raise ShopifyAPIError(resp.text or f"Shopify API error {resp.status_code}")
        return _json(resp)

    def list_products(self, limit: int = 5) -> Dict[str, Any]:
        return self._get("/products.json", params={"limit": limit})

    def get_shop_info(self) -> Dict[str, Any]:
        return self._get("/shop.json").get("shop") or {}

    def get_order(self, order_id: str | int) -> Dict[str, Any]:
        return self._get(f"/orders/{order_id}.json").get("order") or {}


def get_shopify_client_factory():
    """Dependency: returns the client class (tests swap in a fake)."""
    return ShopifyClient
