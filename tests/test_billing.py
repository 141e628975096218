"""
Checkout session creation and billing status.
"""

from types import SimpleNamespace

import pytest
import stripe

from app.billing.stripe_gateway import StripeGateway, StripeLookupError

from conftest import PRO_PRICE


class TestCheckout:

    def test_returns_session_url(self, client, stripe_gateway):
        resp = client.post(
            "/api/stripe/checkout",
            json={"priceId": PRO_PRICE, "email": "Buyer@Acme.test"},
            headers={"Origin": "https://app.acme.test"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"url": f"https://checkout.stripe.test/c/{PRO_PRICE}"}
        assert stripe_gateway.checkouts == [
            dict(price_id=PRO_PRICE, email="buyer@acme.test", origin="https://app.acme.test")
        ]

    def test_missing_fields(self, client, stripe_gateway):
        resp = client.post("/api/stripe/checkout", json={"priceId": PRO_PRICE})
        assert resp.status_code == 400
        assert stripe_gateway.checkouts == []

    def test_not_configured(self, client, stripe_gateway):
        stripe_gateway.api_key = ""
        resp = client.post("/api/stripe/checkout", json={"priceId": PRO_PRICE, "email": "b@acme.test"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Stripe not configured"}

    def test_stripe_error(self, client, stripe_gateway, monkeypatch):
        def fail(**kwargs):
            raise stripe.InvalidRequestError("No such price: 'price_bad'", "price")

        monkeypatch.setattr(stripe_gateway, "create_checkout_session", fail)
        resp = client.post("/api/stripe/checkout", json={"priceId": "price_bad", "email": "b@acme.test"})
        assert resp.status_code == 500


class TestStatus:

    def test_pro(self, client, pro_headers):
        resp = client.get("/api/billing/status", headers=pro_headers)
        assert resp.json() == {"priceId": PRO_PRICE, "plan": "pro", "hasAccess": True}

    def test_free(self, client, free_headers):
        resp = client.get("/api/billing/status", headers=free_headers)
        assert resp.json() == {"priceId": None, "plan": "free", "hasAccess": False}

    def test_plans_listing(self, client):
        plans = client.get("/api/billing/plans").json()["plans"]
        assert [p["id"] for p in plans] == ["free", "starter", "pro", "enterprise"]
        assert PRO_PRICE in plans[2]["priceIds"]


class TestGatewayLookups:

    def test_deleted_customer_has_no_email(self, monkeypatch):
        monkeypatch.setattr(stripe.Customer, "retrieve", lambda cid, api_key=None: SimpleNamespace(id=cid, deleted=True))
        assert StripeGateway("sk_test_fake").customer_email("cus_gone") is None

    def test_customer_email(self, monkeypatch):
        monkeypatch.setattr(
            stripe.Customer, "retrieve", lambda cid, api_key=None: SimpleNamespace(id=cid, email="Buyer@Acme.test")
        )
        assert StripeGateway("sk_test_fake").customer_email("cus_1") == "Buyer@Acme.test"

    def test_lookup_error_is_wrapped(self, monkeypatch):
        def missing(cid, api_key=None):
            raise stripe.InvalidRequestError(f"No such customer: '{cid}'", "id")

        monkeypatch.setattr(stripe.Customer, "retrieve", missing)
        with pytest.raises(StripeLookupError):
            StripeGateway("sk_test_fake").customer_email("cus_gone")
