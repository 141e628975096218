import sys

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.plans.catalog import FREE, plan_for_price
from app.users.models import User


def grant_access(db: Session, email: str, price_id: str) -> User:
    """Same write the webhook does on checkout.session.completed."""
    email = (email or "").strip().lower()
    price_id = (price_id or "").strip()

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise SystemExit(f"User not found: {email}")

    if plan_for_price(price_id) == FREE:
        raise SystemExit(f"Unknown price id: {price_id}")

    user.price_id = price_id
    user.has_access = True
    db.commit()
    return user


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 2:
        raise SystemExit("usage: python -m scripts.grant_access EMAIL PRICE_ID")

    db = SessionLocal()
    try:
        user = grant_access(db, args[0], args[1])
        print(f"OK: {user.email} -> priceId={user.price_id} plan={plan_for_price(user.price_id)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
