from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime

from string_manager.domains.strings.schemas import StringResponse
from string_manager.domains.versions.schemas import VersionResponse


class AppCreate(BaseModel):
    """Схема для создания приложения"""
    name: str = Field(..., min_length=1, max_length=255)
    columns: Optional[List[str]] = None
    key_column: Optional[str] = None
    value_column: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class AppUpdate(BaseModel):
    """Схема для обновления приложения; номер версии меняется только публикацией"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    columns: Optional[List[str]] = None
    key_column: Optional[str] = None
    value_column: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip() if v else v


class AppResponse(BaseModel):
    """Схема для ответа с данными приложения"""
    id: int
    project_id: int
    name: str
    current_version: int
    columns: Optional[List[str]] = None
    key_column: Optional[str] = None
    value_column: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppDetailResponse(AppResponse):
    """Приложение вместе со строками и версиями"""
    strings: List[StringResponse] = []
    versions: List[VersionResponse] = []
