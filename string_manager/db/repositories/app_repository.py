from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from string_manager.db.models.app import App as AppModel
from string_manager.db.models.string_item import StringItem as StringItemModel
from string_manager.db.models.version import Version as VersionModel
from string_manager.domains.apps.entities import App


class AppRepository:
    """Репозиторий для работы с приложениями"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        project_id: int,
        name: str,
        columns: Optional[List[str]] = None,
        key_column: Optional[str] = None,
        value_column: Optional[str] = None,
    ) -> App:
        """Создание нового приложения"""
        db_app = AppModel(
            project_id=project_id,
            name=name,
            current_version=1,
            columns=columns,
            key_column=key_column,
            value_column=value_column
        )

        self.session.add(db_app)
        await self.session.flush()
        await self.session.refresh(db_app)
        return self._to_domain(db_app)

    async def get_by_id(self, app_id: int) -> Optional[App]:
        """Получение приложения по id"""
        result = await self.session.execute(
            select(AppModel).where(AppModel.id == app_id)
        )
        db_app = result.scalar_one_or_none()
        return self._to_domain(db_app) if db_app else None

    async def get_for_update(self, app_id: int) -> Optional[AppModel]:
        """Блокировка строки приложения до конца транзакции"""
        result = await self.session.execute(
            select(AppModel).where(AppModel.id == app_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_project(self, project_id: int) -> List[App]:
        """Приложения проекта"""
        result = await self.session.execute(
            select(AppModel)
            .where(AppModel.project_id == project_id)
            .order_by(AppModel.created_at.asc(), AppModel.id.asc())
        )
        return [self._to_domain(db_app) for db_app in result.scalars().all()]

    async def update(self, app_id: int, values: Dict[str, Any]) -> Optional[App]:
        """Обновление приложения"""
        stmt = (
            update(AppModel)
            .where(AppModel.id == app_id)
            .values(**values, updated_at=datetime.utcnow())
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(app_id)

    async def delete(self, app_id: int) -> bool:
        """Удаление приложения вместе со строками и версиями"""
        await self.session.execute(delete(StringItemModel).where(StringItemModel.app_id == app_id))
        await self.session.execute(delete(VersionModel).where(VersionModel.app_id == app_id))
        result = await self.session.execute(delete(AppModel).where(AppModel.id == app_id))
        return result.rowcount > 0

    def _to_domain(self, db_app: AppModel) -> App:
        """Преобразование модели БД в доменную сущность"""
        return App(
            id=db_app.id,
            project_id=db_app.project_id,
            name=db_app.name,
            current_version=db_app.current_version,
            columns=list(db_app.columns) if db_app.columns is not None else None,
            key_column=db_app.key_column,
            value_column=db_app.value_column,
            created_at=db_app.created_at,
            updated_at=db_app.updated_at
        )
