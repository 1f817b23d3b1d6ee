import logging
from typing import List, Optional

from string_manager.core.exceptions import AccessDeniedError, InvalidInputError
from string_manager.db.store import RecordStore
from string_manager.domains.identity.services import IdentityService
from string_manager.domains.projects.entities import Project, ProjectMember, Role, role_allows
from string_manager.domains.projects.schemas import MemberAdd, ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


class ProjectService:
    """Сервис для работы с проектами и их участниками"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def create_project(self, data: ProjectCreate, user_id: int) -> Project:
        """Создание проекта; создатель становится владельцем"""
        project = await self.store.create_project(data.name, user_id, data.description)
        logger.info("Project %s created by user %s", project.id, user_id)
        return project

    async def get_project(self, project_id: int) -> Optional[Project]:
        """Получение проекта по id"""
        return await self.store.get_project(project_id)

    async def get_user_projects(self, user_id: int) -> List[Project]:
        """Проекты, в которых состоит пользователь"""
        return await self.store.list_projects_for_user(user_id)

    async def update_project(self, project_id: int, data: ProjectUpdate) -> Optional[Project]:
        """Обновление названия и описания"""
        values = data.model_dump(exclude_unset=True)
        if values.get("name") is None:
            values.pop("name", None)
        return await self.store.update_project(project_id, values)

    async def delete_project(self, project_id: int) -> bool:
        """Удаление проекта без приложений"""
        if await self.store.list_apps(project_id):
            raise InvalidInputError("Project still has apps; delete them first")
        return await self.store.delete_project(project_id)

    async def list_members(self, project_id: int) -> List[ProjectMember]:
        """Участники проекта"""
        return await self.store.list_members(project_id)

    async def add_member(self, project_id: int, data: MemberAdd, actor_id: int) -> ProjectMember:
        """Добавление участника или смена его роли"""
        actor = await self.store.get_member(project_id, actor_id)
        if data.role == Role.OWNER and not (actor and role_allows(actor.role, Role.OWNER)):
            raise AccessDeniedError("Only owners can grant the owner role")

        user = await IdentityService(self.store).ensure_user(data.email, data.name or data.email.split("@")[0])
        existing = await self.store.get_member(project_id, user.id)
        if existing and existing.role == Role.OWNER and data.role != Role.OWNER:
            await self._ensure_other_owner(project_id, user.id)

        return await self.store.upsert_member(project_id, user.id, data.role)

    async def remove_member(self, project_id: int, user_id: int) -> bool:
        """Удаление участника; последнего владельца удалить нельзя"""
        member = await self.store.get_member(project_id, user_id)
        if not member:
            return False
        if member.role == Role.OWNER:
            await self._ensure_other_owner(project_id, user_id)
        return await self.store.delete_member(project_id, user_id)

    async def _ensure_other_owner(self, project_id: int, user_id: int) -> None:
        members = await self.store.list_members(project_id)
        if not any(m.role == Role.OWNER and m.user_id != user_id for m in members):
            raise InvalidInputError("Project must keep at least one owner")
