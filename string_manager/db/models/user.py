from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from string_manager.db.base import BaseModel, TimestampMixin


class User(TimestampMixin, BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    avatar_url = Column(String(1024), nullable=True)

    # Relationships
    memberships = relationship("ProjectMember", back_populates="user", cascade="all, delete-orphan")
