import asyncio
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from string_manager.core.exceptions import InvalidInputError
from string_manager.db.store import RecordStore
from string_manager.domains.versions.entities import NewVersion, Version
from string_manager.domains.versions.pending import build_notifications
from string_manager.domains.versions.schemas import VersionPublish
from string_manager.domains.versions.snapshots import FullSnapshotPolicy, SnapshotPolicy

logger = logging.getLogger(__name__)


class VersionPublisher:
    """
    Публикация версий приложения.

    Публикации одного приложения выполняются строго по очереди: экземпляр
    держит asyncio.Lock на каждое приложение. Все записи в хранилище
    выполняются одним вызовом apply_publish; снимок в хранилище с квотой
    пишется после него и на результат публикации не влияет.
    """

    def __init__(self, store: RecordStore, policy: Optional[SnapshotPolicy] = None):
        self.store = store
        self.policy = policy or FullSnapshotPolicy()
        self._locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def publish(self, app_id: int, data: VersionPublish, publisher_id: Optional[int] = None) -> Optional[Version]:
        """Публикация версии; None, если приложения нет"""
        async with self._locks[app_id]:
            app = await self.store.get_app(app_id)
            if not app:
                return None

            strings = await self.store.list_all_strings(app_id)
            version_number = app.current_version
            if data.version_number and data.version_number > 0:
                version_number = await self._check_explicit_number(app_id, data.version_number, app.current_version)
            published_at = datetime.utcnow()

            notifications = build_notifications(strings, published_at)
            entries = self.policy.build(app_id, strings)

            new_version = NewVersion(
                app_id=app_id,
                version_number=version_number,
                publisher_id=publisher_id,
                publisher_name=data.publisher_name,
                notes=data.notes,
                strings_snapshot=entries if self.policy.inline else [],
                notifications=notifications,
                published_at=published_at
            )
            pending = [item for item in strings if item.is_pending]

            version = await self.store.apply_publish(new_version, version_number + 1, pending)
            version.strings_snapshot = self.policy.persist(version, entries)

            logger.info(
                "Published version %s of app %s: %s strings, %s changes",
                version_number, app_id, len(strings), len(notifications)
            )
            return version

    async def _check_explicit_number(self, app_id: int, version_number: int, current_version: int) -> int:
        """Явный номер не может повторять существующую версию или уменьшать счетчик"""
        if version_number < current_version:
            raise InvalidInputError(
                f"Version number {version_number} is below the current version {current_version}"
            )
        used = {version.version_number for version in await self.store.list_versions(app_id)}
        if version_number in used:
            raise InvalidInputError(f"Version {version_number} already exists")
        return version_number


class VersionService:
    """Сервис для работы с версиями приложения"""

    def __init__(self, store: RecordStore, publisher: VersionPublisher):
        self.store = store
        self.publisher = publisher

    async def list_versions(self, app_id: int) -> List[Version]:
        """Версии приложения по возрастанию номера"""
        versions = await self.store.list_versions(app_id)
        return [self.publisher.policy.attach(version) for version in versions]

    async def get_version(self, app_id: int, version_id: int) -> Optional[Version]:
        """Получение версии, принадлежащей приложению"""
        version = await self.store.get_version(version_id)
        if not version or version.app_id != app_id:
            return None
        return self.publisher.policy.attach(version)

    async def publish(self, app_id: int, data: VersionPublish, publisher_id: Optional[int] = None) -> Optional[Version]:
        """Публикация новой версии приложения"""
        return await self.publisher.publish(app_id, data, publisher_id)
