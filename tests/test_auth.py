"""
Account tests: register, login, Shopify OAuth token exchange and callback.
"""

from urllib.parse import parse_qs, urlparse

from app.shopify.client import ShopifyAuthError
from app.users.models import User, Shop

from conftest import auth_headers, make_user


REGISTER = {
    "name": "Ada",
    "email": "Ada@Acme.test",
    "password": "correct-horse",
    "shop": "https://acme-store.myshopify.com/admin",
}


# =============================================================================
# REGISTER / LOGIN
# =============================================================================


class TestRegister:

    def test_creates_user_and_shop(self, client, db_session):
        resp = client.post("/api/auth/register", json=REGISTER)

        assert resp.status_code == 200
        data = resp.json()
        assert data["token"]
        assert data["user"]["email"] == "ada@acme.test"
        assert data["user"]["type"] == "admin"

        user = db_session.query(User).filter(User.email == "ada@acme.test").one()
        assert user.has_access is False
        shop = db_session.query(Shop).filter(Shop.user_id == user.id).one()
        assert shop.shopify_domain == "acme-store.myshopify.com"
        assert shop.shopify_access_token is None

    def test_returns_shopify_authorize_url(self, client, monkeypatch):
        monkeypatch.setenv("SHOPIFY_REDIRECT_URI", "https://app.acme.test/auth/callback")
        url = client.post("/api/auth/register", json=REGISTER).json()["authorizeUrl"]

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "acme-store.myshopify.com"
        assert parsed.path == "/admin/oauth/authorize"
        assert query["client_id"] == ["shopify-key"]
        assert query["redirect_uri"] == ["https://app.acme.test/auth/callback"]
        assert query["scope"] == ["read_products,write_products,read_orders,write_orders"]
        assert query["state"][0]

    def test_duplicate_email(self, client):
        client.post("/api/auth/register", json=REGISTER)
        resp = client.post("/api/auth/register", json=REGISTER)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email already exists"}

    def test_rejects_non_shopify_domain(self, client):
        resp = client.post("/api/auth/register", json={**REGISTER, "shop": "evil.example.com"})
        assert resp.status_code == 400

    def test_short_password(self, client):
        resp = client.post("/api/auth/register", json={**REGISTER, "password": "short"})
        assert resp.status_code == 400

    def test_missing_fields_are_400(self, client):
        resp = client.post("/api/auth/register", json={"email": "x@acme.test"})
        assert resp.status_code == 400
        assert "error" in resp.json()


class TestLogin:

    def test_admin_then_me(self, client):
        client.post("/api/auth/register", json=REGISTER)

        resp = client.post("/api/auth/login", json={"email": "ada@acme.test", "password": "correct-horse"})
        assert resp.status_code == 200
        token = resp.json()["token"]

        me = client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "ada@acme.test"
        assert me.json()["plan"] == "free"

    def test_wrong_password(self, client):
        client.post("/api/auth/register", json=REGISTER)
        resp = client.post("/api/auth/login", json={"email": "ada@acme.test", "password": "wrong-horse"})
        assert resp.status_code == 401

    def test_unknown_email(self, client):
        resp = client.post("/api/auth/login", json={"email": "nobody@acme.test", "password": "whatever1"})
        assert resp.status_code == 401

    def test_invalid_token(self, client):
        resp = client.get("/api/user/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_token_for_deleted_user(self, client):
        resp = client.get("/api/user/me", headers=auth_headers(9999))
        assert resp.status_code == 401


# =============================================================================
# SHOPIFY OAUTH
# =============================================================================


class TestTokenExchange:

    def test_sets_strict_httponly_cookie(self, client, shopify_store):
        resp = client.post("/api/auth/token", json={"code": "abc", "shop": "acme-store.myshopify.com", "state": "s1"})

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "access_token": "shpat_abc"}

        cookie = resp.headers["set-cookie"]
        assert "shopify_access_token=shpat_abc" in cookie
        assert "HttpOnly" in cookie
        assert "SameSite=strict" in cookie or "samesite=strict" in cookie.lower()
        assert "Path=/" in cookie
        assert shopify_store.exchanged == [("acme-store.myshopify.com", "abc", "shopify-key", "shopify-secret")]

    def test_missing_params(self, client):
        resp = client.post("/api/auth/token", json={"code": "abc", "shop": "acme-store.myshopify.com"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required parameters"}

    def test_missing_credentials(self, client, monkeypatch):
        monkeypatch.delenv("SHOPIFY_API_SECRET")
        resp = client.post("/api/auth/token", json={"code": "abc", "shop": "acme-store.myshopify.com", "state": "s"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Server configuration error: Missing API credentials"}

    def test_exchange_failure(self, client, shopify_store):
        shopify_store.fail_with = ShopifyAuthError("Failed to exchange code for access token")
        resp = client.post("/api/auth/token", json={"code": "abc", "shop": "acme-store.myshopify.com", "state": "s"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to exchange token"}
        assert "set-cookie" not in resp.headers


class TestCallback:

    PARAMS = {
        "code": "xyz",
        "shop": "acme-store.myshopify.com",
        "state": "s1",
        "email": "Owner@Acme.test",
        "name": "Owner",
    }

    def test_creates_user_and_stores_token(self, client, db_session):
        resp = client.get("/api/auth/callback", params=self.PARAMS)

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        user = db_session.query(User).filter(User.email == "owner@acme.test").one()
        shop = db_session.query(Shop).filter(Shop.user_id == user.id).one()
        assert shop.shopify_access_token == "shpat_xyz"

    def test_existing_user_gets_token(self, client, db_session):
        user = make_user(db_session, "owner@acme.test", token=None)

        client.get("/api/auth/callback", params=self.PARAMS)

        assert db_session.query(User).count() == 1
        shop = db_session.query(Shop).filter(Shop.user_id == user.id).one()
        assert shop.shopify_access_token == "shpat_xyz"

    def test_missing_email(self, client):
        params = {k: v for k, v in self.PARAMS.items() if k != "email"}
        resp = client.get("/api/auth/callback", params=params)
        assert resp.status_code == 400

    def test_exchange_failure(self, client, db_session, shopify_store):
        shopify_store.fail_with = ShopifyAuthError("nope")
        resp = client.get("/api/auth/callback", params=self.PARAMS)
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to complete callback"}
        assert db_session.query(User).count() == 0
