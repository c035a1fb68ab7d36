from sqlalchemy import Column, Integer, String, Uuid, UniqueConstraint
from database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=False), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(50), nullable=True)
    icon = Column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_user_name"),
    )
