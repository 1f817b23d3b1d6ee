import logging
from datetime import datetime
from typing import List, Optional, Tuple

from string_manager.db.store import RecordStore
from string_manager.domains.strings.entities import StringItem, StringStatus
from string_manager.domains.strings.schemas import StringCreate, StringUpdate
from string_manager.domains.versions.entities import PendingChange
from string_manager.domains.versions.pending import pending_changes

logger = logging.getLogger(__name__)


def matches_search(item: StringItem, term: str) -> bool:
    """Поиск без учета регистра по ключу, значению и дополнительным колонкам"""
    term = term.lower()
    if term in item.key.lower() or term in item.value.lower():
        return True
    return any(value and term in str(value).lower() for value in (item.additional_columns or {}).values())


class StringService:
    """Сервис для работы со строками приложения"""

    def __init__(self, store: RecordStore):
        self.store = store

    async def list_strings(
        self,
        app_id: int,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None
    ) -> Tuple[List[StringItem], int]:
        """Страница строк и общее количество с учетом поиска"""
        if not search or not search.strip():
            return await self.store.list_strings(app_id, page, limit)

        items = [item for item in await self.store.list_all_strings(app_id) if matches_search(item, search.strip())]
        start = (page - 1) * limit
        return items[start:start + limit], len(items)

    async def get_string(self, app_id: int, string_id: int) -> Optional[StringItem]:
        """Получение строки, принадлежащей приложению"""
        item = await self.store.get_string(string_id)
        if not item or item.app_id != app_id:
            return None
        return item

    async def create_string(self, app_id: int, data: StringCreate, user_id: Optional[int] = None) -> StringItem:
        """Создание строки со статусом new"""
        return await self.store.create_string(app_id, {
            "key": data.key,
            "value": data.value,
            "additional_columns": data.additional_columns,
            "status": StringStatus.NEW,
            "modified_at": datetime.utcnow(),
            "modified_by": user_id,
        })

    async def update_string(
        self,
        app_id: int,
        string_id: int,
        data: StringUpdate,
        user_id: Optional[int] = None
    ) -> Optional[StringItem]:
        """Обновление строки; new остается new, остальные становятся modified"""
        item = await self.get_string(app_id, string_id)
        if not item:
            return None

        values = data.model_dump(exclude_unset=True)
        if not values:
            return item

        values.update(
            status=item.status_after_edit(),
            modified_at=datetime.utcnow(),
            modified_by=user_id,
        )
        return await self.store.update_string(string_id, values)

    async def delete_string(self, app_id: int, string_id: int) -> bool:
        """Удаление строки"""
        item = await self.get_string(app_id, string_id)
        if not item:
            return False
        return await self.store.delete_string(string_id)

    async def reset_pending(self, app_id: int) -> int:
        """Сброс статусов без публикации версии"""
        cleared = await self.store.reset_pending(app_id)
        logger.info("Reset %s pending strings of app %s", cleared, app_id)
        return cleared

    async def pending_changes(self, app_id: int) -> List[PendingChange]:
        """Ожидающие публикации изменения"""
        return pending_changes(await self.store.list_all_strings(app_id))
