# app/auth/deps.py

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.security import decode_token, KIND_ADMIN, KIND_SUB_USER
from app.plans.limits import effective_plan, require_page
from app.users.models import User, SubUser

bearer = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """
    Who is calling. `owner` is the account that holds the subscription and
    the shop; for a sub-user it is the admin who created them.
    """
    kind: str
    owner: User
    sub_user: Optional[SubUser] = None

    @property
    def role(self) -> str:
        if self.sub_user is not None:
            return (self.sub_user.role or "").lower()
        return "admin"

    @property
    def email(self) -> str:
        return self.sub_user.email if self.sub_user is not None else self.owner.email

    @property
    def name(self) -> str:
        return (self.sub_user.name if self.sub_user is not None else self.owner.name) or ""

    @property
    def id(self) -> int:
        return self.sub_user.id if self.sub_user is not None else self.owner.id

    @property
    def plan(self) -> str:
        return effective_plan(self.owner.price_id, bool(self.owner.has_access))


def get_current_principal(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> Principal:
    if not creds:
        raise HTTPException(status_code=401, detail="Missing token")

    token = (creds.credentials or "").strip()

    try:
        kind, principal_id = decode_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")

    if kind == KIND_SUB_USER:
        sub = db.query(SubUser).filter(SubUser.id == principal_id).first()
        if not sub:
            raise HTTPException(status_code=401, detail="User not found")
        owner = db.query(User).filter(User.id == sub.owner_id).first()
        if not owner:
            raise HTTPException(status_code=401, detail="Account owner not found")
        return Principal(kind=KIND_SUB_USER, owner=owner, sub_user=sub)

    user = db.query(User).filter(User.id == principal_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return Principal(kind=KIND_ADMIN, owner=user)


def requires_page(page: str):
    """Dependency factory: signed in, and role + plan allow `page`."""

    def dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        require_page(page, user_type=principal.kind, role=principal.role, plan=principal.plan)
        return principal

    return dep
