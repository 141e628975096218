from sqlalchemy import Column, Integer, BigInteger, String, Boolean, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    password_hash = Column(String)

    # subscription mirror; written by the Stripe webhook.
    # column names follow the existing Supabase schema.
    price_id = Column("priceId", String, nullable=True)
    has_access = Column("hasAccess", Boolean, default=False, nullable=False)
    customer_id = Column("customerId", String, index=True, nullable=True)
    session_id = Column("sessionId", String, nullable=True)

    # Stripe `created` of the last event applied to this row
    stripe_event_created = Column(BigInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Shop(Base):
    __tablename__ = "shops"
    __table_args__ = (UniqueConstraint("user_id", "shopify_domain"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    shopify_domain = Column(String, index=True, nullable=False)
    shopify_access_token = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SubUser(Base):
    __tablename__ = "sub_users"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    name = Column(String)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String)
    role = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String)
