# app/core/config.py

from __future__ import annotations

import os
from pathlib import Path
from dotenv import load_dotenv


def _load_env():
    """
    Load .env from the project root (works locally + on the host where env vars exist anyway).
    We don't override existing OS env vars.
    """
    # This file: app/core/config.py  -> parents[2] = project root
    root_dir = Path(__file__).resolve().parents[2]
    env_path = root_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)
    else:
        load_dotenv(override=False)


_load_env()


def _clean(s: str | None) -> str:
    s = (s or "").strip()
    # remove wrapping quotes if present
    if len(s) >= 2 and ((s[0] == s[-1] == '"') or (s[0] == s[-1] == "'")):
        s = s[1:-1].strip()
    return s


def env(name: str, *fallbacks: str, default: str = "") -> str:
    """
    Read a setting at call time. Fallback names cover the VITE_* keys the
    old deployment used (VITE_STRIPE_WEBHOOK_SECRET, ...).
    """
    for key in (name, *fallbacks):
        value = _clean(os.getenv(key))
        if value:
            return value
    return default


DATABASE_URL = _clean(os.getenv("DATABASE_URL")) or "sqlite:///./shopifyq.db"

JWT_SECRET = _clean(os.getenv("JWT_SECRET")) or "dev-secret"

try:
    JWT_EXPIRE_MIN = int(_clean(os.getenv("JWT_EXPIRE_MIN")) or "720")
except ValueError:
    JWT_EXPIRE_MIN = 720

LOG_LEVEL = (_clean(os.getenv("LOG_LEVEL")) or "INFO").upper()

FRONTEND_ORIGIN = _clean(os.getenv("FRONTEND_ORIGIN")) or "*"


# ---- request-time settings ----

def stripe_secret_key() -> str:
    return env("STRIPE_SECRET_KEY")


def stripe_webhook_secret() -> str:
    return env("STRIPE_WEBHOOK_SECRET", "VITE_STRIPE_WEBHOOK_SECRET")


def shopify_api_key() -> str:
    return env("SHOPIFY_API_KEY", "VITE_SHOPIFY_API_KEY")


def shopify_api_secret() -> str:
    return env("SHOPIFY_API_SECRET", "VITE_SHOPIFY_API_SECRET")


def shopify_redirect_uri() -> str:
    return env("SHOPIFY_REDIRECT_URI", "VITE_REDIRECT_URI", default="http://localhost:8080/auth/callback")


def dutify_api_url() -> str:
    return env("DUTIFY_API_URL").rstrip("/")


def dutify_api_key() -> str:
    return env("DUTIFY_API_KEY")


def esg_api_url() -> str:
    return env("ESG_API_URL").rstrip("/")


def esg_api_key() -> str:
    return env("ESG_API_KEY")


def is_production() -> bool:
    return env("APP_ENV", "NODE_ENV").lower() == "production"
