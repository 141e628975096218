from __future__ import annotations

from typing import Any, Dict, List

import requests

from app.core.config import esg_api_url, esg_api_key


class EsgProviderError(RuntimeError):
    pass


def fetch_scores(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Score a batch of products with the ESG provider.
    products: [{"id", "title", "vendor"}]
    Returns the provider's rows: [{"product_id", "esg_score", "environment_score",
    "social_score", "governance_score", "vendor_symbol"}]
    """
    base_url = esg_api_url()
    api_key = esg_api_key()
    if not base_url or not api_key:
        raise EsgProviderError("ESG provider is not configured (ESG_API_URL / ESG_API_KEY)")

    if not products:
        return []

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": "shopifyq/1.0",
    }

    try:
        resp = requests.post(
            f"{base_url}/scores",
            json={"products": products},
            headers=headers,
            timeout=(5, 30),
        )
    except requests.RequestException as e:
        raise EsgProviderError(f"ESG request failed: {e}") from e

    if not (200 <= resp.status_code < 300):
        raise EsgProviderError(f"ESG API error {resp.status_code}: {(resp.text or '')[:900]}")

    try:
        data = resp.json()
    except ValueError as e:
        raise EsgProviderError("ESG provider returned non-JSON response") from e

    return list(data.get("scores") or [])


def get_score_fetcher():
    return fetch_scores
