from sqlalchemy.orm import Session
from app.users.models import Role

ROLES = [
    dict(name="admin", description="Full access, billing and team management"),
    dict(name="manager", description="Catalog, documents, landed cost and ESG"),
    dict(name="analyst", description="HS codes, documents and ESG"),
    dict(name="viewer", description="Documents only"),
]

ROLE_NAMES = tuple(r["name"] for r in ROLES)

def seed_roles(db: Session):
    for r in ROLES:
        exists = db.query(Role).filter(Role.name == r["name"]).first()
        if not exists:
            db.add(Role(**r))
    db.commit()
