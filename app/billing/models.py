# app/billing/models.py

from sqlalchemy import Column, Integer, BigInteger, String, DateTime
from sqlalchemy.sql import func

from app.db.base import Base


class StripeEvent(Base):
    """
    Stripe webhook events that were applied to a user row.
    Written in the same transaction as the user update; a re-delivered
    event id is acknowledged without writing again.
    """
    __tablename__ = "stripe_events"

    id = Column(Integer, primary_key=True)
    stripe_event_id = Column(String, unique=True, index=True, nullable=False)

    # examples: checkout.session.completed, invoice.payment_failed
    event_type = Column(String, index=True, nullable=False)

    customer_id = Column(String, index=True, nullable=True)
    stripe_created = Column(BigInteger, nullable=True)
    rows_updated = Column(Integer, default=0)

    processed_at = Column(DateTime(timezone=True), server_default=func.now())
