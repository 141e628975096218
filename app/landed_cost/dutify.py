from __future__ import annotations

from typing import Any, Dict

import requests

from app.core.config import dutify_api_url, dutify_api_key


class DutifyError(RuntimeError):
    pass


def _rate(data: Dict[str, Any], *keys: str) -> float:
    for k in keys:
        if data.get(k) is not None:
            try:
                value = float(data[k])
            except (TypeError, ValueError):
                raise DutifyError(f"Dutify returned a non-numeric {k}: {data[k]!r}")
            if value < 0:
                raise DutifyError(f"Dutify returned a negative {k}")
            return value
    raise DutifyError(f"Dutify response is missing {keys[0]}")


def fetch_rates(*, hs_code: str, destination_country: str, currency: str, customs_value: float) -> Dict[str, float]:
    """
    Ask Dutify for the duty and import VAT rates of one HS code into one country.
    Reads DUTIFY_API_URL / DUTIFY_API_KEY from env on every call.
    Returns {"duty_rate": fraction, "vat_rate": fraction}.
    """
    base_url = dutify_api_url()
    api_key = dutify_api_key()
    if not base_url or not api_key:
        raise DutifyError("Dutify is not configured (DUTIFY_API_URL / DUTIFY_API_KEY)")

    payload = {
        "hs_code": hs_code,
        "destination_country": destination_country,
        "currency": currency,
        "customs_value": customs_value,
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": "shopifyq/1.0",
    }

    timeout = (5, 15)  # connect, read

    try:
        resp = requests.post(f"{base_url}/landed-cost/rates", json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise DutifyError(f"Dutify request failed: {e}") from e

    if not (200 <= resp.status_code < 300):
        body = (resp.text or "")[:900]
        raise DutifyError(f"Dutify API error {resp.status_code}: {body}")

    try:
        data = resp.json()
    except ValueError as e:
        raise DutifyError("Dutify returned non-JSON response") from e

    return {
        "duty_rate": _rate(data, "duty_rate", "dutyRate"),
        "vat_rate": _rate(data, "vat_rate", "vatRate", "tax_rate"),
    }


def get_rate_fetcher():
    """Dependency: the rate lookup used by the landed-cost routes."""
    return fetch_rates
