from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from string_manager.db.base import BaseModel


class Version(BaseModel):
    __tablename__ = "versions"
    __table_args__ = (UniqueConstraint("app_id", "version_number", name="uq_versions_app_number"),)

    app_id = Column(Integer, ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    publisher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    publisher_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    strings_snapshot = Column(JSON, nullable=False, default=list)
    notifications = Column(JSON, nullable=False, default=list)
    published_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    app = relationship("App", back_populates="versions")
