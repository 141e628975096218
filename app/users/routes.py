from pydantic import BaseModel, EmailStr
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.auth.deps import Principal, get_current_principal, requires_page
from app.core.security import hash_password
from app.db.session import get_db
from app.plans.catalog import PLANS
from app.plans.limits import ADMIN, allowed_pages, navigation_menu
from app.users.models import User, SubUser, Role
from app.users.seed import ROLE_NAMES

router = APIRouter(tags=["users"])


class EmailBody(BaseModel):
    email: str = ""


class SubUserBody(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: str


def _sub_user_out(s: SubUser) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "email": s.email,
        "role": s.role,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


@router.post("/user/get")
def get_user_plan(body: EmailBody, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    if not email:
        raise HTTPException(status_code=400, detail="Missing email")

    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise HTTPException(status_code=404, detail="No user found")
    return {"priceId": user.price_id}


@router.get("/user/me")
def me(principal: Principal = Depends(get_current_principal)):
    plan = principal.plan
    return {
        "user": {
            "id": principal.id,
            "name": principal.name,
            "email": principal.email,
            "type": principal.kind,
            "role": principal.role,
        },
        "priceId": principal.owner.price_id,
        "hasAccess": bool(principal.owner.has_access),
        "plan": plan,
        "planName": PLANS[plan]["name"],
        "pages": allowed_pages(principal.kind, principal.role),
        "menu": navigation_menu(principal.kind, principal.role, plan),
    }


# ---------------- team (sub-users) ----------------

@router.get("/admin/roles")
def list_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ADMIN)),
):
    roles = db.query(Role).order_by(Role.id.asc()).all()
    return {"roles": [{"name": r.name, "description": r.description} for r in roles]}


@router.get("/admin/sub-users")
def list_sub_users(
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ADMIN)),
):
    subs = (
        db.query(SubUser)
        .filter(SubUser.owner_id == principal.owner.id)
        .order_by(SubUser.id.desc())
        .all()
    )
    items = [_sub_user_out(s) for s in subs]
    return {"value": items, "count": len(items)}


@router.post("/admin/sub-users")
def create_sub_user(
    body: SubUserBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ADMIN)),
):
    role = body.role.strip().lower()
    if role not in ROLE_NAMES:
        raise HTTPException(status_code=400, detail=f"Unknown role: {body.role}")

    email = body.email.lower().strip()
    if db.query(SubUser).filter(SubUser.email == email).first() or db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already exists")

    limit = PLANS[principal.plan]["team_members"]
    if limit is not None:
        used = db.query(SubUser).filter(SubUser.owner_id == principal.owner.id).count()
        if used >= limit:
            raise HTTPException(
                status_code=402,
                detail=f"Team member limit reached: {limit} on your plan",
            )

    try:
        pwd_hash = hash_password(body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    sub = SubUser(
        owner_id=principal.owner.id,
        name=body.name.strip(),
        email=email,
        password_hash=pwd_hash,
        role=role,
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return _sub_user_out(sub)


@router.delete("/admin/sub-users/{sub_user_id}")
def delete_sub_user(
    sub_user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(requires_page(ADMIN)),
):
    sub = (
        db.query(SubUser)
        .filter(SubUser.id == sub_user_id, SubUser.owner_id == principal.owner.id)
        .first()
    )
    if not sub:
        raise HTTPException(status_code=404, detail="Sub-user not found")
    db.delete(sub)
    db.commit()
    return {"ok": True}
