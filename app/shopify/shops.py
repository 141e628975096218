from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.users.models import Shop


def get_owner_shop(db: Session, owner_id: int) -> Shop:
    """
    The connected shop of an account. Sub-users resolve through their
    owner, so callers always pass principal.owner.id.
    """
    shop = (
        db.query(Shop)
        .filter(Shop.user_id == owner_id)
        .order_by(Shop.id.desc())
        .first()
    )
    if not shop:
        raise HTTPException(status_code=404, detail="No Shopify store connected")
    if not shop.shopify_access_token:
        raise HTTPException(status_code=409, detail="Shopify store is not authorized yet")
    return shop


def upsert_shop(db: Session, *, user_id: int, domain: str, access_token: str | None = None) -> Shop:
    shop = (
        db.query(Shop)
        .filter(Shop.user_id == user_id, Shop.shopify_domain == domain)
        .first()
    )
    if not shop:
        shop = Shop(user_id=user_id, shopify_domain=domain)
        db.add(shop)
    if access_token:
        shop.shopify_access_token = access_token
    return shop
