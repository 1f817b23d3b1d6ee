from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime

from string_manager.domains.projects.entities import Role


class ProjectBase(BaseModel):
    """Базовая схема проекта"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class ProjectCreate(ProjectBase):
    """Схема для создания проекта"""
    pass


class ProjectUpdate(BaseModel):
    """Схема для обновления проекта"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip() if v else v


class ProjectResponse(ProjectBase):
    """Схема для ответа с данными проекта"""
    id: int
    created_by: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberAdd(BaseModel):
    """Схема для добавления участника по email"""
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    role: Role = Role.MEMBER


class MemberResponse(BaseModel):
    """Схема для ответа с данными участника"""
    id: int
    project_id: int
    user_id: int
    role: Role
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
