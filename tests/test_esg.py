"""
ESG scoring: risk levels, summaries and the /shopify/esg endpoints.
"""

from types import SimpleNamespace

import pytest

from app.esg.models import EsgRequest, ProductEsgScore
from app.esg import provider
from app.esg.provider import EsgProviderError
from app.esg.scoring import clamp_score, risk_level, summarize
from app.users.models import Shop


PRODUCTS = [
    {"id": 1, "title": "Linen shirt", "vendor": "Acme"},
    {"id": 2, "title": "Cotton cap", "vendor": "Nordwear"},
    {"id": 3, "title": "Leather belt", "vendor": "Tannery Co"},
]

SCORES = {
    "1": dict(esg_score=8.2, environment_score=7.5, social_score=8.0, governance_score=9.1, vendor_symbol="ACME"),
    "2": dict(esg_score=5.5, environment_score=4.0, social_score=6.0, governance_score=6.5, vendor_symbol=None),
    "3": dict(esg_score=12, environment_score=-1, social_score="3.0", governance_score=None, vendor_symbol=None),
}


class TestScoring:

    @pytest.mark.parametrize(
        "score,level",
        [(None, "high"), (0, "high"), (4.99, "high"), (5, "medium"), (6.99, "medium"), (7, "low"), (10, "low")],
    )
    def test_risk_level(self, score, level):
        assert risk_level(score) == level

    def test_clamp(self):
        assert clamp_score(12) == 10.0
        assert clamp_score(-3) == 0.0
        assert clamp_score("6.456") == 6.46
        assert clamp_score("n/a") is None
        assert clamp_score("") is None

    def test_summary(self):
        rows = [
            SimpleNamespace(esg_score=8.0, environment_score=7.0, social_score=9.0, governance_score=8.0),
            SimpleNamespace(esg_score=6.0, environment_score=5.0, social_score=None, governance_score=6.0),
            SimpleNamespace(esg_score=None, environment_score=None, social_score=None, governance_score=None),
        ]
        assert summarize(rows) == {
            "totalProducts": 3,
            "averageESGScore": 7.0,
            "riskDistribution": {"low": 1, "medium": 1, "high": 1},
            "averageScores": {"environmental": 6.0, "social": 9.0, "governance": 7.0},
        }

    def test_empty_summary(self):
        assert summarize([])["averageESGScore"] == 0.0


@pytest.fixture()
def catalog(shopify_store, esg_scores):
    shopify_store.products = list(PRODUCTS)
    esg_scores.scores = dict(SCORES)
    return shopify_store


class TestEsgEndpoints:

    def test_process_scores_all_products(self, client, db_session, pro_headers, catalog, esg_scores):
        resp = client.post("/api/shopify/esg/process", json={}, headers=pro_headers)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "requested": 3, "processed": 3}
        assert [p["id"] for p in esg_scores.calls[0]] == ["1", "2", "3"]

        rows = {r.product_id: r for r in db_session.query(ProductEsgScore).all()}
        assert rows["1"].risk_level == "low"
        assert rows["2"].risk_level == "medium"
        assert rows["3"].esg_score == 10.0
        assert rows["3"].environment_score == 0.0
        assert rows["3"].social_score == 3.0

        req = db_session.query(EsgRequest).one()
        assert req.status == "done"
        assert req.scored == 3

    def test_process_subset_and_rescore(self, client, db_session, pro_headers, catalog, esg_scores):
        client.post("/api/shopify/esg/process", json={"productIds": ["2"]}, headers=pro_headers)
        esg_scores.scores["2"] = dict(esg_score=3.0, environment_score=3.0, social_score=3.0, governance_score=3.0)
        client.post("/api/shopify/esg/process", json={"productIds": ["2"]}, headers=pro_headers)

        row = db_session.query(ProductEsgScore).one()
        assert row.product_id == "2"
        assert row.risk_level == "high"

    def test_provider_failure_logged(self, client, db_session, pro_headers, catalog, esg_scores):
        esg_scores.error = EsgProviderError("ESG API error 502: bad gateway")

        resp = client.post("/api/shopify/esg/process", json={}, headers=pro_headers)

        assert resp.status_code == 500
        req = db_session.query(EsgRequest).one()
        assert req.status == "failed"
        assert "502" in req.error
        assert db_session.query(ProductEsgScore).count() == 0

    def test_data_and_summary(self, client, pro_headers, catalog):
        client.post("/api/shopify/esg/process", json={}, headers=pro_headers)

        data = client.post("/api/shopify/esg/data", headers=pro_headers).json()["esgData"]
        assert [d["productId"] for d in data] == ["1", "2", "3"]
        assert data[0]["vendorSymbol"] == "ACME"
        assert data[0]["riskLevel"] == "low"

        summary = client.post("/api/shopify/esg/summary", headers=pro_headers).json()
        assert summary["totalProducts"] == 3
        assert summary["riskDistribution"] == {"low": 2, "medium": 1, "high": 0}

    def test_starter_plan_gets_402(self, client, starter_headers, catalog):
        resp = client.post("/api/shopify/esg/data", headers=starter_headers)
        assert resp.status_code == 402

    def test_no_shop_connected(self, client, db_session, pro_user, pro_headers):
        db_session.query(Shop).delete()
        db_session.commit()
        resp = client.post("/api/shopify/esg/summary", headers=pro_headers)
        assert resp.status_code == 404


class TestProviderClient:

    @pytest.fixture(autouse=True)
    def configured(self, monkeypatch):
        monkeypatch.setenv("ESG_API_URL", "https://esg.test/v1/")
        monkeypatch.setenv("ESG_API_KEY", "esg_key")

    def test_posts_batch(self, monkeypatch):
        seen = {}

        class Resp:
            status_code = 200
            text = ""

            def json(self):
                return {"scores": [{"product_id": "1", "esg_score": 7.1}]}

        def post(url, json, headers, timeout):
            seen.update(url=url, json=json, auth=headers["Authorization"])
            return Resp()

        monkeypatch.setattr(provider.requests, "post", post)
        rows = provider.fetch_scores([{"id": "1", "title": "Shirt", "vendor": "Acme"}])

        assert rows == [{"product_id": "1", "esg_score": 7.1}]
        assert seen["url"] == "https://esg.test/v1/scores"
        assert seen["auth"] == "Bearer esg_key"

    def test_empty_batch_skips_request(self, monkeypatch):
        def post(*a, **k):
            raise AssertionError("no request expected")

        monkeypatch.setattr(provider.requests, "post", post)
        assert provider.fetch_scores([]) == []

    def test_not_configured(self, monkeypatch):
        monkeypatch.delenv("ESG_API_URL")
        with pytest.raises(EsgProviderError):
            provider.fetch_scores([{"id": "1"}])
