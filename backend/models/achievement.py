from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Uuid
from database import Base


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(50), unique=True, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=0)


class UserAchievement(Base):
    """Unlock ledger: one row per (user, achievement), never updated."""

    __tablename__ = "user_achievements"

    user_id = Column(Uuid(as_uuid=False), primary_key=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id", ondelete="CASCADE"), primary_key=True)
    unlocked_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
