from string_manager.core.exceptions import AccessDeniedError
from string_manager.db.store import RecordStore
from string_manager.domains.projects.entities import Role


class AccessService:
    """Проверка роли пользователя в проекте"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def can_access_project(self, project_id: int, user_id: int, min_role: Role = Role.VIEWER) -> bool:
        return await self.store.has_project_access(project_id, user_id, min_role)

    async def can_access_app(self, app_id: int, user_id: int, min_role: Role = Role.VIEWER) -> bool:
        return await self.store.has_app_access(app_id, user_id, min_role)

    async def require_project(self, project_id: int, user_id: int, min_role: Role = Role.VIEWER) -> None:
        """AccessDeniedError, если роль ниже требуемой"""
        if not await self.can_access_project(project_id, user_id, min_role):
            raise AccessDeniedError()

    async def require_app(self, app_id: int, user_id: int, min_role: Role = Role.VIEWER) -> None:
        """AccessDeniedError, если роль в проекте приложения ниже требуемой"""
        if not await self.can_access_app(app_id, user_id, min_role):
            raise AccessDeniedError()
