# app/documents/models.py

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.db.base import Base


class OrderInvoice(Base):
    __tablename__ = "order_invoices"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    shopify_domain = Column(String, index=True, nullable=False)
    order_id = Column(String, index=True, nullable=False)
    order_number = Column(String)

    total = Column(String)
    currency = Column(String)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class OrderPackingList(Base):
    __tablename__ = "order_packing_lists"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    shopify_domain = Column(String, index=True, nullable=False)
    order_id = Column(String, index=True, nullable=False)
    order_number = Column(String)

    net_weight = Column(Float, nullable=False)
    gross_weight = Column(Float, nullable=False)
    total_units = Column(Integer)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
