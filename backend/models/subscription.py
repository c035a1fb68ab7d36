from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, Uuid, CheckConstraint,
)
from database import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=False), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    merchant = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    every_n = Column(Integer, nullable=False, default=1)
    unit = Column(String(10), nullable=False)  # day/week/month/year
    start_date = Column(DateTime(timezone=True), nullable=False)
    next_charge_at = Column(DateTime(timezone=True), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_subscription_amount_positive"),
        CheckConstraint("every_n > 0", name="ck_subscription_every_n_positive"),
        CheckConstraint("unit IN ('day', 'week', 'month', 'year')", name="ck_subscription_unit"),
    )
