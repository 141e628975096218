from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.db.base import Base


class LandedCostCalculation(Base):
    __tablename__ = "landed_cost_calculations"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    hs_code = Column(String, index=True, nullable=False)
    destination_country = Column(String, nullable=False)
    currency = Column(String, nullable=False)

    product_value = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False)
    shipping_cost = Column(Float, default=0)
    insurance = Column(Float, default=0)

    duty_rate = Column(Float)
    duty_amount = Column(Float)
    vat_rate = Column(Float)
    vat_amount = Column(Float)
    total_landed_cost = Column(Float)
    margin = Column(Float)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
