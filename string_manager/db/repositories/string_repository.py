from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from string_manager.db.models.string_item import StringItem as StringItemModel
from string_manager.domains.strings.entities import StringItem, StringStatus


class StringRepository:
    """Репозиторий для работы со строками приложений"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, app_id: int, values: Dict[str, Any]) -> StringItem:
        """Создание строки"""
        db_item = StringItemModel(app_id=app_id, **self._to_columns(values))

        self.session.add(db_item)
        await self.session.flush()
        await self.session.refresh(db_item)
        return self._to_domain(db_item)

    async def get_by_id(self, string_id: int) -> Optional[StringItem]:
        """Получение строки по id"""
        result = await self.session.execute(
            select(StringItemModel).where(StringItemModel.id == string_id)
        )
        db_item = result.scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    async def get_page(self, app_id: int, page: int, limit: int) -> Tuple[List[StringItem], int]:
        """Страница строк приложения и общее количество"""
        total = await self.session.execute(
            select(func.count(StringItemModel.id)).where(StringItemModel.app_id == app_id)
        )
        result = await self.session.execute(
            select(StringItemModel)
            .where(StringItemModel.app_id == app_id)
            .order_by(StringItemModel.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = [self._to_domain(db_item) for db_item in result.scalars().all()]
        return items, total.scalar()

    async def get_by_app(self, app_id: int) -> List[StringItem]:
        """Все строки приложения в порядке создания"""
        result = await self.session.execute(
            select(StringItemModel)
            .where(StringItemModel.app_id == app_id)
            .order_by(StringItemModel.id.asc())
        )
        return [self._to_domain(db_item) for db_item in result.scalars().all()]

    async def update(self, string_id: int, values: Dict[str, Any]) -> Optional[StringItem]:
        """Частичное обновление строки"""
        if values:
            stmt = (
                update(StringItemModel)
                .where(StringItemModel.id == string_id)
                .values(**self._to_columns(values))
            )
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                return None
        return await self.get_by_id(string_id)

    async def delete(self, string_id: int) -> bool:
        """Удаление строки"""
        result = await self.session.execute(
            delete(StringItemModel).where(StringItemModel.id == string_id)
        )
        return result.rowcount > 0

    async def clear_pending(self, app_id: int, string_ids: Optional[Iterable[int]] = None) -> int:
        """Сброс status/modified_at у ожидающих публикации строк"""
        stmt = (
            update(StringItemModel)
            .where(
                StringItemModel.app_id == app_id,
                StringItemModel.status.is_not(None)
            )
            .values(status=None, modified_at=None)
        )
        if string_ids is not None:
            ids = list(string_ids)
            if not ids:
                return 0
            stmt = stmt.where(StringItemModel.id.in_(ids))
        result = await self.session.execute(stmt)
        return result.rowcount

    async def clear_unchanged(self, app_id: int, loaded: Sequence[StringItem]) -> int:
        """Сброс статусов только у строк, не изменившихся после чтения"""
        loaded_by_id = {item.id: item for item in loaded}
        if not loaded_by_id:
            return 0

        result = await self.session.execute(
            select(StringItemModel)
            .where(
                StringItemModel.app_id == app_id,
                StringItemModel.id.in_(list(loaded_by_id))
            )
            .with_for_update()
        )
        unchanged = [
            db_item.id for db_item in result.scalars().all()
            if self._to_domain(db_item).same_content(loaded_by_id[db_item.id])
        ]
        return await self.clear_pending(app_id, unchanged)

    @staticmethod
    def _to_columns(values: Dict[str, Any]) -> Dict[str, Any]:
        columns = dict(values)
        if isinstance(columns.get("status"), StringStatus):
            columns["status"] = columns["status"].value
        return columns

    def _to_domain(self, db_item: StringItemModel) -> StringItem:
        """Преобразование модели БД в доменную сущность"""
        return StringItem(
            id=db_item.id,
            app_id=db_item.app_id,
            key=db_item.key,
            value=db_item.value,
            additional_columns=dict(db_item.additional_columns) if db_item.additional_columns else None,
            status=StringStatus(db_item.status) if db_item.status else None,
            modified_at=db_item.modified_at,
            modified_by=db_item.modified_by,
            created_at=db_item.created_at
        )
