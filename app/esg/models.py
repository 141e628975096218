from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from app.db.base import Base


class ProductEsgScore(Base):
    __tablename__ = "product_esg_scores"
    __table_args__ = (UniqueConstraint("shopify_domain", "product_id"),)

    id = Column(Integer, primary_key=True)
    shopify_domain = Column(String, index=True, nullable=False)
    product_id = Column(String, index=True, nullable=False)

    product_title = Column(String)
    vendor = Column(String)
    vendor_symbol = Column(String)

    esg_score = Column(Float)
    environment_score = Column(Float)
    social_score = Column(Float)
    governance_score = Column(Float)
    risk_level = Column(String, index=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class EsgRequest(Base):
    __tablename__ = "esg_requests"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    shopify_domain = Column(String, index=True, nullable=False)

    requested = Column(Integer, default=0)
    scored = Column(Integer, default=0)

    # done | failed
    status = Column(String, nullable=False)
    error = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
