from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Роли участников проекта"""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


ROLE_HIERARCHY = {
    Role.VIEWER: 1,
    Role.MEMBER: 2,
    Role.ADMIN: 3,
    Role.OWNER: 4,
}


def role_level(role) -> int:
    """Уровень роли в иерархии; неизвестная роль имеет уровень 0"""
    try:
        return ROLE_HIERARCHY[Role(role)]
    except ValueError:
        return 0


def role_allows(role, min_role) -> bool:
    """Проверка, что роль не ниже требуемой"""
    return role_level(role) >= role_level(min_role)


@dataclass
class Project:
    """Сущность проекта"""

    id: int
    name: str
    created_by: int
    description: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ProjectMember:
    """Участник проекта с ролью"""

    id: int
    project_id: int
    user_id: int
    role: Role
    created_at: datetime = field(default_factory=datetime.utcnow)
