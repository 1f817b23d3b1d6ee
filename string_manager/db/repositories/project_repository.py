from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from string_manager.db.models.project import Project as ProjectModel, ProjectMember as ProjectMemberModel
from string_manager.domains.projects.entities import Project, ProjectMember, Role


class ProjectRepository:
    """Репозиторий для работы с проектами"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, name: str, created_by: int, description: Optional[str] = None) -> Project:
        """Создание нового проекта"""
        db_project = ProjectModel(name=name, description=description, created_by=created_by)

        self.session.add(db_project)
        await self.session.flush()
        await self.session.refresh(db_project)
        return self._to_domain(db_project)

    async def get_by_id(self, project_id: int) -> Optional[Project]:
        """Получение проекта по id"""
        result = await self.session.execute(
            select(ProjectModel).where(ProjectModel.id == project_id)
        )
        db_project = result.scalar_one_or_none()
        return self._to_domain(db_project) if db_project else None

    async def get_by_member(self, user_id: int) -> List[Project]:
        """Проекты, в которых состоит пользователь"""
        result = await self.session.execute(
            select(ProjectModel)
            .join(ProjectMemberModel, ProjectMemberModel.project_id == ProjectModel.id)
            .where(ProjectMemberModel.user_id == user_id)
            .order_by(ProjectModel.created_at.asc(), ProjectModel.id.asc())
        )
        db_projects = result.scalars().all()
        return [self._to_domain(project) for project in db_projects]

    async def update(self, project_id: int, values: Dict[str, Any]) -> Optional[Project]:
        """Обновление проекта"""
        stmt = (
            update(ProjectModel)
            .where(ProjectModel.id == project_id)
            .values(**values, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(project_id)

    async def delete(self, project_id: int) -> bool:
        """Удаление проекта вместе с участниками"""
        await self.session.execute(
            delete(ProjectMemberModel).where(ProjectMemberModel.project_id == project_id)
        )
        result = await self.session.execute(
            delete(ProjectModel).where(ProjectModel.id == project_id)
        )
        return result.rowcount > 0

    def _to_domain(self, db_project: ProjectModel) -> Project:
        """Преобразование модели БД в доменную сущность"""
        return Project(
            id=db_project.id,
            name=db_project.name,
            description=db_project.description,
            created_by=db_project.created_by,
            created_at=db_project.created_at,
            updated_at=db_project.updated_at
        )


class ProjectMemberRepository:
    """Репозиторий для работы с участниками проектов"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, project_id: int, user_id: int) -> Optional[ProjectMember]:
        """Участие пользователя в проекте"""
        result = await self.session.execute(
            select(ProjectMemberModel).where(
                and_(
                    ProjectMemberModel.project_id == project_id,
                    ProjectMemberModel.user_id == user_id
                )
            )
        )
        db_member = result.scalar_one_or_none()
        return self._to_domain(db_member) if db_member else None

    async def get_by_project(self, project_id: int) -> List[ProjectMember]:
        """Участники проекта"""
        result = await self.session.execute(
            select(ProjectMemberModel)
            .where(ProjectMemberModel.project_id == project_id)
            .order_by(ProjectMemberModel.created_at.asc(), ProjectMemberModel.id.asc())
        )
        return [self._to_domain(member) for member in result.scalars().all()]

    async def upsert(self, project_id: int, user_id: int, role: Role) -> ProjectMember:
        """Добавление участника или смена роли существующего"""
        stmt = (
            update(ProjectMemberModel)
            .where(
                and_(
                    ProjectMemberModel.project_id == project_id,
                    ProjectMemberModel.user_id == user_id
                )
            )
            .values(role=Role(role).value)
        )
        result = await self.session.execute(stmt)

        # Если участника нет, создаем новую запись
        if result.rowcount == 0:
            self.session.add(ProjectMemberModel(project_id=project_id, user_id=user_id, role=Role(role).value))
            await self.session.flush()

        return await self.get(project_id, user_id)

    async def delete(self, project_id: int, user_id: int) -> bool:
        """Удаление участника"""
        result = await self.session.execute(
            delete(ProjectMemberModel).where(
                and_(
                    ProjectMemberModel.project_id == project_id,
                    ProjectMemberModel.user_id == user_id
                )
            )
        )
        return result.rowcount > 0

    def _to_domain(self, db_member: ProjectMemberModel) -> ProjectMember:
        """Преобразование модели БД в доменную сущность"""
        return ProjectMember(
            id=db_member.id,
            project_id=db_member.project_id,
            user_id=db_member.user_id,
            role=Role(db_member.role),
            created_at=db_member.created_at
        )
