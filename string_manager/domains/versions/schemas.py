from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

from string_manager.domains.strings.entities import StringStatus
from string_manager.domains.versions.entities import ChangeLabel


class VersionPublish(BaseModel):
    """Схема для публикации версии"""
    version_number: Optional[int] = Field(None, description="Номер версии; по умолчанию текущий номер приложения")
    publisher_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=10000)

    @field_validator('publisher_name', 'notes')
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        return v.strip() or None


class SnapshotEntryResponse(BaseModel):
    """Строка в снимке версии"""
    id: int
    key: str
    value: str
    status: Optional[StringStatus] = None
    modified_at: Optional[datetime] = None
    additional_columns: Optional[Dict[str, str]] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    """Уведомление об изменении строки"""
    id: str
    status: ChangeLabel
    string_number: int
    string_id: str
    modified_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VersionResponse(BaseModel):
    """Схема для ответа с данными версии"""
    id: int
    app_id: int
    version_number: int
    publisher_id: Optional[int] = None
    publisher_name: Optional[str] = None
    notes: Optional[str] = None
    strings_snapshot: List[SnapshotEntryResponse]
    notifications: List[NotificationResponse]
    published_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PendingChangeResponse(BaseModel):
    """Неопубликованное изменение строки"""
    id: int
    label: ChangeLabel
    position: int
    key: str
    modified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
