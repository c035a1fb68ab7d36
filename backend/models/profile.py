from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Uuid
from database import Base


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the Supabase auth user
    id = Column(Uuid(as_uuid=False), primary_key=True)
    email = Column(String(320), nullable=True)
    full_name = Column(String(200), nullable=True)
    avatar_url = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))
