from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from string_manager.db.base import BaseModel


class StringItem(BaseModel):
    __tablename__ = "string_items"

    app_id = Column(Integer, ForeignKey("apps.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(Text, nullable=False)
    value = Column(Text, nullable=False)
    additional_columns = Column(JSON, nullable=True)
    # new | modified | NULL
    status = Column(String(20), nullable=True, index=True)
    modified_at = Column(DateTime, nullable=True)
    modified_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    app = relationship("App", back_populates="strings")
