from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from string_manager.db.models.version import Version as VersionModel
from string_manager.db.serialization import (
    dump_notifications, dump_snapshot, load_notifications, load_snapshot
)
from string_manager.domains.versions.entities import NewVersion, Version


class VersionRepository:
    """Репозиторий для работы с версиями приложений"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, new_version: NewVersion) -> Version:
        """Сохранение опубликованной версии"""
        db_version = VersionModel(
            app_id=new_version.app_id,
            version_number=new_version.version_number,
            publisher_id=new_version.publisher_id,
            publisher_name=new_version.publisher_name,
            notes=new_version.notes,
            strings_snapshot=dump_snapshot(new_version.strings_snapshot),
            notifications=dump_notifications(new_version.notifications),
            published_at=new_version.published_at
        )

        self.session.add(db_version)
        await self.session.flush()
        await self.session.refresh(db_version)
        return self._to_domain(db_version)

    async def get_by_id(self, version_id: int) -> Optional[Version]:
        """Получение версии по id"""
        result = await self.session.execute(
            select(VersionModel).where(VersionModel.id == version_id)
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def get_by_app(self, app_id: int) -> List[Version]:
        """Версии приложения по возрастанию номера"""
        result = await self.session.execute(
            select(VersionModel)
            .where(VersionModel.app_id == app_id)
            .order_by(VersionModel.version_number.asc(), VersionModel.id.asc())
        )
        return [self._to_domain(db_version) for db_version in result.scalars().all()]

    def _to_domain(self, db_version: VersionModel) -> Version:
        """Преобразование модели БД в доменную сущность"""
        return Version(
            id=db_version.id,
            app_id=db_version.app_id,
            version_number=db_version.version_number,
            publisher_id=db_version.publisher_id,
            publisher_name=db_version.publisher_name,
            notes=db_version.notes,
            strings_snapshot=load_snapshot(db_version.strings_snapshot),
            notifications=load_notifications(db_version.notifications),
            published_at=db_version.published_at
        )
