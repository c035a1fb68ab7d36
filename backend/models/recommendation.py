from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Boolean, JSON, Uuid
from database import Base


class Recommendation(Base):
    __tablename__ = "recommendations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=False), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    potential_savings = Column(Numeric(12, 2), default=0)
    carbon_reduction = Column(Numeric(10, 3), default=0)
    action_steps = Column(JSON, nullable=True)  # list of strings
    priority = Column(String(10), default="medium")  # low/medium/high
    seen = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
