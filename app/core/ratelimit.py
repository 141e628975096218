import os

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "1") == "1"

limiter = Limiter(key_func=get_remote_address, enabled=RATELIMIT_ENABLED)

def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded. Please try again later."},
        headers={"Retry-After": "60"},
    )
