from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Dict
from datetime import datetime

from string_manager.domains.strings.entities import StringStatus


def _strip_required(v, field_name: str):
    if v is None:
        return v
    if not v.strip():
        raise ValueError(f'{field_name} cannot be empty')
    return v.strip()


def _strip_present(v, field_name: str):
    # null допустим только для additional_columns
    if v is None:
        raise ValueError(f'{field_name} cannot be null')
    return _strip_required(v, field_name)


class StringCreate(BaseModel):
    """Схема для создания строки"""
    key: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    additional_columns: Optional[Dict[str, str]] = None

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        return _strip_required(v, 'Key')

    @field_validator('value')
    @classmethod
    def validate_value(cls, v):
        return _strip_required(v, 'Value')


class StringUpdate(BaseModel):
    """Схема для обновления строки"""
    key: Optional[str] = None
    value: Optional[str] = None
    additional_columns: Optional[Dict[str, str]] = None

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        return _strip_present(v, 'Key')

    @field_validator('value')
    @classmethod
    def validate_value(cls, v):
        return _strip_present(v, 'Value')


class StringResponse(BaseModel):
    """Схема для ответа с данными строки"""
    id: int
    app_id: int
    key: str
    value: str
    additional_columns: Optional[Dict[str, str]] = None
    status: Optional[StringStatus] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StringPage(BaseModel):
    """Страница строк приложения"""
    items: List[StringResponse]
    total: int
    page: int
    limit: int


class ResetPendingResponse(BaseModel):
    """Результат сброса ожидающих изменений"""
    cleared: int
