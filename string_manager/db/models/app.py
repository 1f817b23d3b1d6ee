from sqlalchemy import JSON, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from string_manager.db.base import BaseModel, TimestampMixin


class App(TimestampMixin, BaseModel):
    __tablename__ = "apps"

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    current_version = Column(Integer, nullable=False, default=1)
    columns = Column(JSON, nullable=True)
    key_column = Column(String(255), nullable=True)
    value_column = Column(String(255), nullable=True)

    # Relationships
    project = relationship("Project", back_populates="apps")
    strings = relationship("StringItem", back_populates="app", cascade="all, delete-orphan")
    versions = relationship("Version", back_populates="app", cascade="all, delete-orphan")
