from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Uuid, CheckConstraint
from database import Base


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=False), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    merchant = Column(String(200), nullable=True)
    description = Column(String(500), nullable=True)
    transport_type = Column(String(50), nullable=True)  # bus/metro/taxi/fuel/bike...
    carbon_kg = Column(Numeric(10, 3), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        CheckConstraint("carbon_kg >= 0", name="ck_expense_carbon_non_negative"),
    )
