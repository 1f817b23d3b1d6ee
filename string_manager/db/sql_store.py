"""
Хранилище в реляционной БД через асинхронный SQLAlchemy.

Каждый вызов выполняется в собственной транзакции; публикация версии,
сдвиг номера приложения и сброс статусов строк идут одной транзакцией
с блокировкой строки приложения.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from string_manager.core.exceptions import StorageError
from string_manager.db.base import Base
from string_manager.db.repositories import (
    AppRepository,
    ProjectMemberRepository,
    ProjectRepository,
    StringRepository,
    UserRepository,
    VersionRepository,
)
from string_manager.db.store import (
    APP_FIELDS, PROJECT_FIELDS, STRING_FIELDS, USER_FIELDS, RecordStore, pick_fields
)
from string_manager.domains.apps.entities import App
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Project, ProjectMember, Role
from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import NewVersion, Version

# Регистрация всех таблиц в метаданных
import string_manager.db.models  # noqa: F401

logger = logging.getLogger(__name__)


class SqlRecordStore(RecordStore):
    """Хранилище записей в SQL базе данных"""

    def __init__(self, database_url: str, echo: bool = False, create_schema: bool = True):
        self.database_url = database_url
        self.create_schema = create_schema
        self.engine = create_async_engine(database_url, future=True, echo=echo)
        self.session_factory = sessionmaker(bind=self.engine, class_=AsyncSession, expire_on_commit=False)

    async def initialize(self) -> None:
        """Создание каталога для SQLite и таблиц, если они еще не существуют"""
        url = make_url(self.database_url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        if self.create_schema:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("SQL store ready at %s", url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Сессия с фиксацией при успехе и откатом при ошибке"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error("Database operation failed: %s", e)
            raise StorageError(f"Database operation failed: {e}") from e

    # Пользователи

    async def create_user(self, email: str, name: str, avatar_url: Optional[str] = None) -> User:
        async with self._transaction() as session:
            return await UserRepository(session).create(email, name, avatar_url)

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._transaction() as session:
            return await UserRepository(session).get_by_id(user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self._transaction() as session:
            return await UserRepository(session).get_by_email(email)

    async def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[User]:
        values = pick_fields(data, USER_FIELDS)
        async with self._transaction() as session:
            return await UserRepository(session).update(user_id, values)

    async def count_users(self) -> int:
        async with self._transaction() as session:
            return await UserRepository(session).count()

    # Проекты и участники

    async def create_project(self, name: str, created_by: int, description: Optional[str] = None) -> Project:
        async with self._transaction() as session:
            project = await ProjectRepository(session).create(name, created_by, description)
            await ProjectMemberRepository(session).upsert(project.id, created_by, Role.OWNER)
            return project

    async def get_project(self, project_id: int) -> Optional[Project]:
        async with self._transaction() as session:
            return await ProjectRepository(session).get_by_id(project_id)

    async def list_projects_for_user(self, user_id: int) -> List[Project]:
        async with self._transaction() as session:
            return await ProjectRepository(session).get_by_member(user_id)

    async def update_project(self, project_id: int, data: Dict[str, Any]) -> Optional[Project]:
        values = pick_fields(data, PROJECT_FIELDS)
        async with self._transaction() as session:
            return await ProjectRepository(session).update(project_id, values)

    async def delete_project(self, project_id: int) -> bool:
        async with self._transaction() as session:
            return await ProjectRepository(session).delete(project_id)

    async def get_member(self, project_id: int, user_id: int) -> Optional[ProjectMember]:
        async with self._transaction() as session:
            return await ProjectMemberRepository(session).get(project_id, user_id)

    async def list_members(self, project_id: int) -> List[ProjectMember]:
        async with self._transaction() as session:
            return await ProjectMemberRepository(session).get_by_project(project_id)

    async def upsert_member(self, project_id: int, user_id: int, role: Role) -> ProjectMember:
        async with self._transaction() as session:
            return await ProjectMemberRepository(session).upsert(project_id, user_id, role)

    async def delete_member(self, project_id: int, user_id: int) -> bool:
        async with self._transaction() as session:
            return await ProjectMemberRepository(session).delete(project_id, user_id)

    # Приложения

    async def create_app(
        self,
        project_id: int,
        name: str,
        columns: Optional[List[str]] = None,
        key_column: Optional[str] = None,
        value_column: Optional[str] = None,
    ) -> App:
        async with self._transaction() as session:
            return await AppRepository(session).create(project_id, name, columns, key_column, value_column)

    async def get_app(self, app_id: int) -> Optional[App]:
        async with self._transaction() as session:
            return await AppRepository(session).get_by_id(app_id)

    async def list_apps(self, project_id: int) -> List[App]:
        async with self._transaction() as session:
            return await AppRepository(session).get_by_project(project_id)

    async def update_app(self, app_id: int, data: Dict[str, Any]) -> Optional[App]:
        values = pick_fields(data, APP_FIELDS)
        async with self._transaction() as session:
            return await AppRepository(session).update(app_id, values)

    async def delete_app(self, app_id: int) -> bool:
        async with self._transaction() as session:
            return await AppRepository(session).delete(app_id)

    # Строки

    async def create_string(self, app_id: int, data: Dict[str, Any]) -> StringItem:
        values = pick_fields(data, STRING_FIELDS)
        async with self._transaction() as session:
            return await StringRepository(session).create(app_id, values)

    async def get_string(self, string_id: int) -> Optional[StringItem]:
        async with self._transaction() as session:
            return await StringRepository(session).get_by_id(string_id)

    async def list_strings(self, app_id: int, page: int = 1, limit: int = 50) -> Tuple[List[StringItem], int]:
        async with self._transaction() as session:
            return await StringRepository(session).get_page(app_id, page, limit)

    async def list_all_strings(self, app_id: int) -> List[StringItem]:
        async with self._transaction() as session:
            return await StringRepository(session).get_by_app(app_id)

    async def update_string(self, string_id: int, data: Dict[str, Any]) -> Optional[StringItem]:
        values = pick_fields(data, STRING_FIELDS)
        async with self._transaction() as session:
            return await StringRepository(session).update(string_id, values)

    async def delete_string(self, string_id: int) -> bool:
        async with self._transaction() as session:
            return await StringRepository(session).delete(string_id)

    async def reset_pending(self, app_id: int) -> int:
        async with self._transaction() as session:
            return await StringRepository(session).clear_pending(app_id)

    # Версии

    async def apply_publish(
        self,
        new_version: NewVersion,
        next_current_version: int,
        published_strings: Sequence[StringItem],
    ) -> Version:
        async with self._transaction() as session:
            db_app = await AppRepository(session).get_for_update(new_version.app_id)
            if db_app is None:
                raise ValueError(f"App {new_version.app_id} does not exist")

            version = await VersionRepository(session).create(new_version)
            await AppRepository(session).update(db_app.id, {"current_version": next_current_version})
            await StringRepository(session).clear_unchanged(db_app.id, published_strings)
            return version

    async def get_version(self, version_id: int) -> Optional[Version]:
        async with self._transaction() as session:
            return await VersionRepository(session).get_by_id(version_id)

    async def list_versions(self, app_id: int) -> List[Version]:
        async with self._transaction() as session:
            return await VersionRepository(session).get_by_app(app_id)
