import logging
import secrets

from pydantic import BaseModel, EmailStr
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.users.models import User, SubUser
from app.core.config import shopify_api_key, shopify_api_secret, shopify_redirect_uri, is_production
from app.core.ratelimit import limiter
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    KIND_ADMIN,
    KIND_SUB_USER,
)
from app.shopify.client import (
    ShopifyAPIError,
    ShopifyAuthError,
    authorize_url,
    normalize_shop_domain,
    get_shopify_client_factory,
)
from app.shopify.shops import upsert_shop

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

ACCESS_TOKEN_COOKIE = "shopify_access_token"

class RegisterBody(BaseModel):
    name: str
    email: EmailStr
    password: str
    shop: str

class LoginBody(BaseModel):
    email: EmailStr
    password: str

class TokenBody(BaseModel):
    code: str = ""
    shop: str = ""
    state: str = ""


def _user_payload(principal_id: int, name: str | None, email: str, kind: str, role: str) -> dict:
    return {"id": principal_id, "name": name or "", "email": email, "type": kind, "role": role}


@router.post("/register")
def register(body: RegisterBody, db: Session = Depends(get_db)):
    email = body.email.lower().strip()

    try:
        domain = normalize_shop_domain(body.shop)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already exists")
    if db.query(SubUser).filter(SubUser.email == email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    try:
        pwd_hash = hash_password(body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user = User(email=email, name=body.name.strip(), password_hash=pwd_hash, has_access=False)
    db.add(user)
    db.flush()
    upsert_shop(db, user_id=user.id, domain=domain)
    db.commit()
    db.refresh(user)

    return {
        "token": create_access_token(user.id, KIND_ADMIN),
        "user": _user_payload(user.id, user.name, user.email, KIND_ADMIN, "admin"),
        "authorizeUrl": authorize_url(domain, shopify_api_key(), shopify_redirect_uri(), secrets.token_urlsafe(12)),
    }


@router.post("/login")
@limiter.limit("10/minute")
def login(request: Request, body: LoginBody, db: Session = Depends(get_db)):
    email = body.email.lower().strip()
    password = body.password

    user = db.query(User).filter(User.email == email).first()
    if user and verify_password(password, user.password_hash):
        return {
            "token": create_access_token(user.id, KIND_ADMIN),
            "user": _user_payload(user.id, user.name, user.email, KIND_ADMIN, "admin"),
        }

    sub = db.query(SubUser).filter(SubUser.email == email).first()
    if sub and verify_password(password, sub.password_hash):
        return {
            "token": create_access_token(sub.id, KIND_SUB_USER),
            "user": _user_payload(sub.id, sub.name, sub.email, KIND_SUB_USER, (sub.role or "").lower()),
        }

    raise HTTPException(status_code=401, detail="Invalid credentials")


def _exchange(factory, shop: str, code: str) -> dict:
    api_key = shopify_api_key()
    api_secret = shopify_api_secret()
    if not api_key or not api_secret:
        log.error("missing SHOPIFY_API_KEY or SHOPIFY_API_SECRET")
        raise HTTPException(status_code=500, detail="Server configuration error: Missing API credentials")
    return factory.exchange_code_for_token(shop, code, api_key, api_secret)


@router.post("/token")
def exchange_token(
    body: TokenBody,
    response: Response,
    factory=Depends(get_shopify_client_factory),
):
    if not body.code or not body.shop or not body.state:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    try:
        shop = normalize_shop_domain(body.shop)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        token_response = _exchange(factory, shop, body.code)
    except (ShopifyAPIError, ShopifyAuthError) as e:
        log.error("token exchange error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to exchange token")

    access_token = str(token_response["access_token"])
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        httponly=True,
        secure=is_production(),
        samesite="strict",
        path="/",
    )
    return {"success": True, "access_token": access_token}


@router.get("/callback")
def oauth_callback(
    code: str = "",
    shop: str = "",
    state: str = "",
    email: str = "",
    name: str = "",
    db: Session = Depends(get_db),
    factory=Depends(get_shopify_client_factory),
):
    if not code or not shop or not state or not email or not name:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    try:
        domain = normalize_shop_domain(shop)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        token_response = _exchange(factory, domain, code)
    except (ShopifyAPIError, ShopifyAuthError) as e:
        log.error("callback error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to complete callback")

    email = email.strip().lower()
    try:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, name=name.strip(), has_access=False)
            db.add(user)
            db.flush()
        upsert_shop(db, user_id=user.id, domain=domain, access_token=token_response["access_token"])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("callback persistence error: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True}
