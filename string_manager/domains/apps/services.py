import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from string_manager.db.store import RecordStore
from string_manager.domains.apps.entities import App
from string_manager.domains.apps.schemas import AppCreate, AppUpdate
from string_manager.domains.versions.snapshots import FullSnapshotPolicy, SnapshotPolicy

logger = logging.getLogger(__name__)


class AppService:
    """Сервис для работы с приложениями проекта"""

    def __init__(self, store: RecordStore, policy: Optional[SnapshotPolicy] = None):
        self.store = store
        self.policy = policy or FullSnapshotPolicy()

    async def create_app(self, project_id: int, data: AppCreate) -> App:
        """Создание приложения с версией 1"""
        app = await self.store.create_app(project_id, data.name, data.columns, data.key_column, data.value_column)
        logger.info("App %s created in project %s", app.id, project_id)
        return app

    async def get_app(self, project_id: int, app_id: int) -> Optional[App]:
        """Получение приложения, принадлежащего проекту"""
        app = await self.store.get_app(app_id)
        if not app or app.project_id != project_id:
            return None
        return app

    async def get_app_detail(self, project_id: int, app_id: int) -> Optional[Dict[str, Any]]:
        """Приложение со всеми строками и версиями"""
        app = await self.get_app(project_id, app_id)
        if not app:
            return None
        versions = [self.policy.attach(version) for version in await self.store.list_versions(app_id)]
        return {
            **asdict(app),
            "strings": [asdict(item) for item in await self.store.list_all_strings(app_id)],
            "versions": [asdict(version) for version in versions],
        }

    async def list_apps(self, project_id: int) -> List[App]:
        """Приложения проекта"""
        return await self.store.list_apps(project_id)

    async def update_app(self, app_id: int, data: AppUpdate) -> Optional[App]:
        """Обновление названия и описания колонок"""
        values = data.model_dump(exclude_unset=True)
        if values.get("name") is None:
            values.pop("name", None)
        return await self.store.update_app(app_id, values)

    async def delete_app(self, app_id: int) -> bool:
        """Удаление приложения вместе со строками, версиями и снимками"""
        deleted = await self.store.delete_app(app_id)
        if deleted:
            self.policy.forget(app_id)
        return deleted
