"""
Pytest fixtures for the ShopifyQ backend tests.

Provides an in-memory database, a TestClient with get_db overridden, and
fakes for Stripe, Shopify, Dutify and the ESG provider.
"""

import hashlib
import hmac
import json
import os
import time

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATELIMIT_ENABLED"] = "0"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["SHOPIFY_API_KEY"] = "shopify-key"
os.environ["SHOPIFY_API_SECRET"] = "shopify-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.init_db import init_db
from app.db.session import get_db
from app.billing.stripe_gateway import StripeLookupError, get_stripe_gateway
from app.core.security import create_access_token, KIND_ADMIN, KIND_SUB_USER
from app.esg.provider import get_score_fetcher
from app.landed_cost.dutify import get_rate_fetcher
from app.shopify.client import ShopifyAPIError, get_shopify_client_factory, normalize_shop_domain
from app.users.models import User, Shop, SubUser
from app.users.seed import seed_roles

WEBHOOK_SECRET = "whsec_test_secret"

STARTER_PRICE = "price_1RcnoUQiUhrwJo9CamPZGsh1"
PRO_PRICE = "price_1RcnpzQiUhrwJo9CVz7Wsug6"

SHOP_DOMAIN = "acme-store.myshopify.com"


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    db = Session()
    seed_roles(db)
    yield db
    db.close()


# =============================================================================
# FAKES
# =============================================================================


class FakeStripeGateway:
    def __init__(self):
        self.api_key = "sk_test_fake"
        self.customers = {}
        self.subscriptions = {}
        self.lookups = []
        self.checkouts = []

    def customer_email(self, customer_id):
        self.lookups.append(("customer", customer_id))
        if customer_id not in self.customers:
            raise StripeLookupError(f"Failed to retrieve customer: No such customer: '{customer_id}'")
        return self.customers[customer_id]

    def subscription(self, subscription_id):
        self.lookups.append(("subscription", subscription_id))
        if subscription_id not in self.subscriptions:
            raise StripeLookupError(f"Failed to retrieve subscription: No such subscription: '{subscription_id}'")
        return self.subscriptions[subscription_id]

    def create_checkout_session(self, *, price_id, email, origin):
        self.checkouts.append(dict(price_id=price_id, email=email, origin=origin))
        return f"https://checkout.stripe.test/c/{price_id}"


class FakeShopifyStore:
    """Backing data for FakeShopifyClient; one per test."""

    def __init__(self):
        self.shop = {"name": "Acme Store", "email": "hello@acme.test", "address1": "1 Main St", "city": "Lyon", "country": "FR"}
        self.products = []
        self.orders = {}
        self.exchanged = []
        self.fail_with = None


def make_shopify_factory(store: FakeShopifyStore):
    class FakeShopifyClient:
        def __init__(self, shop_domain, access_token):
            self.shop_domain = normalize_shop_domain(shop_domain)
            if not (access_token or "").strip():
                raise ValueError("Missing shop access token")
            self.access_token = access_token

        @classmethod
        def exchange_code_for_token(cls, shop, code, api_key, api_secret):
            store.exchanged.append((shop, code, api_key, api_secret))
            if store.fail_with:
                raise store.fail_with
            return {"access_token": f"shpat_{code}", "scope": "read_products,read_orders"}

        def _check(self):
            if store.fail_with:
                raise store.fail_with

        def list_products(self, limit=5):
            self._check()
            return {"products": store.products[:limit]}

        def get_shop_info(self):
            self._check()
            return store.shop

        def get_order(self, order_id):
            self._check()
            if str(order_id) not in store.orders:
                raise ShopifyAPIError('{"errors":"Not Found"}')
            return store.orders[str(order_id)]

    return FakeShopifyClient


class FakeRates:
    def __init__(self):
        self.duty_rate = 0.12
        self.vat_rate = 0.2
        self.error = None
        self.calls = []

    def __call__(self, *, hs_code, destination_country, currency, customs_value):
        self.calls.append(dict(hs_code=hs_code, destination_country=destination_country, currency=currency, customs_value=customs_value))
        if self.error:
            raise self.error
        return {"duty_rate": self.duty_rate, "vat_rate": self.vat_rate}


class FakeScores:
    def __init__(self):
        self.scores = {}
        self.error = None
        self.calls = []

    def __call__(self, products):
        self.calls.append(products)
        if self.error:
            raise self.error
        return [dict(product_id=p["id"], **self.scores[p["id"]]) for p in products if p["id"] in self.scores]


@pytest.fixture()
def stripe_gateway():
    return FakeStripeGateway()


@pytest.fixture()
def shopify_store():
    return FakeShopifyStore()


@pytest.fixture()
def rates():
    return FakeRates()


@pytest.fixture()
def esg_scores():
    return FakeScores()


@pytest.fixture()
def client(db_session, stripe_gateway, shopify_store, rates, esg_scores):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    app.dependency_overrides[get_shopify_client_factory] = lambda: make_shopify_factory(shopify_store)
    app.dependency_overrides[get_rate_fetcher] = lambda: rates
    app.dependency_overrides[get_score_fetcher] = lambda: esg_scores

    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# ACCOUNTS
# =============================================================================


def make_user(db, email, *, price_id=None, has_access=False, customer_id=None, shop=SHOP_DOMAIN, token="shpat_test"):
    user = User(
        email=email,
        name=email.split("@")[0].title(),
        price_id=price_id,
        has_access=has_access,
        customer_id=customer_id,
    )
    db.add(user)
    db.flush()
    if shop:
        db.add(Shop(user_id=user.id, shopify_domain=shop, shopify_access_token=token))
    db.commit()
    db.refresh(user)
    return user


def auth_headers(principal_id, kind=KIND_ADMIN):
    return {"Authorization": f"Bearer {create_access_token(principal_id, kind)}"}


@pytest.fixture()
def free_user(db_session):
    return make_user(db_session, "free@acme.test")


@pytest.fixture()
def starter_user(db_session):
    return make_user(db_session, "starter@acme.test", price_id=STARTER_PRICE, has_access=True, customer_id="cus_starter")


@pytest.fixture()
def pro_user(db_session):
    return make_user(db_session, "pro@acme.test", price_id=PRO_PRICE, has_access=True, customer_id="cus_pro")


@pytest.fixture()
def pro_headers(pro_user):
    return auth_headers(pro_user.id)


@pytest.fixture()
def starter_headers(starter_user):
    return auth_headers(starter_user.id)


@pytest.fixture()
def free_headers(free_user):
    return auth_headers(free_user.id)


def make_sub_user(db, owner, email, role):
    sub = SubUser(owner_id=owner.id, name=role.title(), email=email, password_hash=None, role=role)
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


def sub_user_headers(sub):
    return auth_headers(sub.id, KIND_SUB_USER)


# =============================================================================
# STRIPE SIGNATURES
# =============================================================================


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    ts = int(time.time()) if timestamp is None else timestamp
    sig = hmac.new(secret.encode("utf-8"), f"{ts}.{payload}".encode("utf-8"), hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def stripe_event(event_type, obj, *, event_id="evt_1", created=1_700_000_000):
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": created,
        "data": {"object": obj},
    }


@pytest.fixture()
def post_event(client):
    def _post(event, *, secret=WEBHOOK_SECRET, signature=None):
        payload = json.dumps(event)
        headers = {"Content-Type": "application/json"}
        headers["stripe-signature"] = signature if signature is not None else sign_payload(payload, secret)
        return client.post("/api/webhook", content=payload.encode("utf-8"), headers=headers)

    return _post
