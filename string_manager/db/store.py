"""
Контракт хранилища записей.

Три реализации (память + файл, SQL, Redis) ведут себя одинаково с точки
зрения вызывающего кода: отсутствие записи это None/False, а не исключение;
сбои ввода-вывода оборачиваются в StorageError.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from string_manager.domains.apps.entities import App
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Project, ProjectMember, Role, role_allows
from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import NewVersion, Version

USER_FIELDS = {"name", "avatar_url"}
PROJECT_FIELDS = {"name", "description"}
APP_FIELDS = {"name", "current_version", "columns", "key_column", "value_column"}
STRING_FIELDS = {"key", "value", "additional_columns", "status", "modified_at", "modified_by"}


def pick_fields(data: Dict[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    """Частичное обновление: только разрешенные и переданные поля"""
    allowed = set(allowed)
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
    return dict(data)


class RecordStore(ABC):
    """Хранилище пользователей, проектов, приложений, строк и версий"""

    async def initialize(self) -> None:
        """Подготовка хранилища при старте процесса"""

    async def close(self) -> None:
        """Освобождение ресурсов при остановке процесса"""

    # Пользователи

    @abstractmethod
    async def create_user(self, email: str, name: str, avatar_url: Optional[str] = None) -> User:
        ...

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[User]:
        ...

    @abstractmethod
    async def count_users(self) -> int:
        ...

    # Проекты и участники

    @abstractmethod
    async def create_project(self, name: str, created_by: int, description: Optional[str] = None) -> Project:
        """Создание проекта; создатель сразу становится владельцем"""

    @abstractmethod
    async def get_project(self, project_id: int) -> Optional[Project]:
        ...

    @abstractmethod
    async def list_projects_for_user(self, user_id: int) -> List[Project]:
        ...

    @abstractmethod
    async def update_project(self, project_id: int, data: Dict[str, Any]) -> Optional[Project]:
        ...

    @abstractmethod
    async def delete_project(self, project_id: int) -> bool:
        ...

    @abstractmethod
    async def get_member(self, project_id: int, user_id: int) -> Optional[ProjectMember]:
        ...

    @abstractmethod
    async def list_members(self, project_id: int) -> List[ProjectMember]:
        ...

    @abstractmethod
    async def upsert_member(self, project_id: int, user_id: int, role: Role) -> ProjectMember:
        """Одна запись на пару (проект, пользователь): повторное добавление меняет роль"""

    @abstractmethod
    async def delete_member(self, project_id: int, user_id: int) -> bool:
        ...

    # Приложения

    @abstractmethod
    async def create_app(
        self,
        project_id: int,
        name: str,
        columns: Optional[List[str]] = None,
        key_column: Optional[str] = None,
        value_column: Optional[str] = None,
    ) -> App:
        ...

    @abstractmethod
    async def get_app(self, app_id: int) -> Optional[App]:
        ...

    @abstractmethod
    async def list_apps(self, project_id: int) -> List[App]:
        ...

    @abstractmethod
    async def update_app(self, app_id: int, data: Dict[str, Any]) -> Optional[App]:
        ...

    @abstractmethod
    async def delete_app(self, app_id: int) -> bool:
        ...

    # Строки

    @abstractmethod
    async def create_string(self, app_id: int, data: Dict[str, Any]) -> StringItem:
        ...

    @abstractmethod
    async def get_string(self, string_id: int) -> Optional[StringItem]:
        ...

    @abstractmethod
    async def list_strings(self, app_id: int, page: int = 1, limit: int = 50) -> Tuple[List[StringItem], int]:
        """Страница строк в порядке создания и общее количество"""

    @abstractmethod
    async def list_all_strings(self, app_id: int) -> List[StringItem]:
        ...

    @abstractmethod
    async def update_string(self, string_id: int, data: Dict[str, Any]) -> Optional[StringItem]:
        ...

    @abstractmethod
    async def delete_string(self, string_id: int) -> bool:
        ...

    @abstractmethod
    async def reset_pending(self, app_id: int) -> int:
        """Сброс пары status/modified_at; возвращает число затронутых строк"""

    # Версии

    @abstractmethod
    async def apply_publish(
        self,
        new_version: NewVersion,
        next_current_version: int,
        published_strings: Sequence[StringItem],
    ) -> Version:
        """
        Создание версии, сдвиг счетчика приложения и сброс статусов одной атомарной записью.

        published_strings - строки в том виде, в каком их прочитал публикатор.
        Статус сбрасывается только у строк, которые с тех пор не менялись:
        правка, сделанная во время публикации, остается ожидающей.
        """

    @abstractmethod
    async def get_version(self, version_id: int) -> Optional[Version]:
        ...

    @abstractmethod
    async def list_versions(self, app_id: int) -> List[Version]:
        """Версии приложения по возрастанию номера"""

    # Доступ

    async def has_project_access(self, project_id: int, user_id: int, min_role: Role = Role.VIEWER) -> bool:
        """Проверка роли участника проекта по иерархии viewer < member < admin < owner"""
        member = await self.get_member(project_id, user_id)
        if member is None:
            return False
        return role_allows(member.role, min_role)

    async def has_app_access(self, app_id: int, user_id: int, min_role: Role = Role.VIEWER) -> bool:
        """Доступ к приложению определяется ролью в родительском проекте"""
        app = await self.get_app(app_id)
        if app is None:
            return False
        return await self.has_project_access(app.project_id, user_id, min_role)
