# app/main.py

from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# SlowAPI setup
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from app.core.ratelimit import limiter, rate_limit_exceeded_handler

from app.core.config import FRONTEND_ORIGIN, LOG_LEVEL
from app.db.session import SessionLocal
from app.db.init_db import init_db
from app.users.seed import seed_roles

from app.auth.routes import router as auth_router
from app.users.routes import router as users_router
from app.billing.routes import router as billing_router
from app.billing.webhook import router as webhook_router
from app.shopify.routes import router as shopify_router
from app.documents.routes import router as documents_router
from app.landed_cost.routes import router as landed_cost_router
from app.esg.routes import router as esg_router

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("app")

app = FastAPI(title="ShopifyQ API")


# CORS (Frontend -> Backend)
# FRONTEND_ORIGIN = https://app.example.com,http://localhost:5173
raw_origins = (FRONTEND_ORIGIN or "*").strip()

if raw_origins == "*":
    allow_origins = ["*"]
    allow_credentials = False  # can't use credentials with "*"
else:
    allow_origins = [o.strip().rstrip("/") for o in raw_origins.split(",") if o.strip()]
    allow_credentials = True

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# attach limiter + middleware + handler
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg") or "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {msg}" if field else msg},
    )


@app.on_event("startup")
async def on_startup():
    init_db()

    db = SessionLocal()
    try:
        seed_roles(db)
    finally:
        db.close()

    log.info("ShopifyQ API started")


app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(billing_router, prefix="/api")
app.include_router(webhook_router, prefix="/api")
app.include_router(shopify_router, prefix="/api")
app.include_router(documents_router, prefix="/api")
app.include_router(landed_cost_router, prefix="/api")
app.include_router(esg_router, prefix="/api")


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/")
def root():
    return {"ok": True, "message": "ShopifyQ API is running", "docs": "/docs"}
