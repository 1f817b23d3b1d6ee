"""
Политики снимков версий.

FullSnapshotPolicy хранит полный снимок прямо в записи версии.
QuotaSnapshotPolicy рассчитана на хранилище с ограниченным объемом: снимок
пишется отдельно от версии в LocalSnapshotStore в компактном виде, история
обрезается до нескольких последних версий, а у больших приложений
сохраняются только изменившиеся строки.
"""

import json
import logging
from typing import List, Sequence

from string_manager.core.exceptions import StorageError, StorageQuotaError
from string_manager.db.snapshot_store import LocalSnapshotStore
from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import SnapshotEntry, Version

logger = logging.getLogger(__name__)


class SnapshotPolicy:
    """Базовая политика: как строится и где хранится снимок версии"""

    #: Снимок сохраняется внутри записи версии
    inline = True

    def build(self, app_id: int, strings: Sequence[StringItem]) -> List[SnapshotEntry]:
        raise NotImplementedError

    def persist(self, version: Version, entries: List[SnapshotEntry]) -> List[SnapshotEntry]:
        """Сохранение снимка после записи версии; возвращает то, что сохранено"""
        return entries

    def attach(self, version: Version) -> Version:
        """Подстановка снимка в прочитанную версию"""
        return version

    def forget(self, app_id: int) -> None:
        """Удаление снимков приложения"""


class FullSnapshotPolicy(SnapshotPolicy):
    """Полная копия всех строк вместе с дополнительными колонками"""

    def build(self, app_id: int, strings: Sequence[StringItem]) -> List[SnapshotEntry]:
        return [SnapshotEntry.from_string(item) for item in strings]


class QuotaSnapshotPolicy(SnapshotPolicy):
    """Снимки в отдельном хранилище с квотой"""

    inline = False

    def __init__(self, store: LocalSnapshotStore, large_app_threshold: int = 1600, max_history_versions: int = 3):
        self.store = store
        self.large_app_threshold = large_app_threshold
        self.max_history_versions = max_history_versions

    @staticmethod
    def _app_prefix(app_id: int) -> str:
        return f"{app_id:010d}-"

    def _key(self, version: Version) -> str:
        return f"{self._app_prefix(version.app_id)}{version.id:010d}"

    def build(self, app_id: int, strings: Sequence[StringItem]) -> List[SnapshotEntry]:
        if len(strings) > self.large_app_threshold:
            strings = [item for item in strings if item.is_pending]
        return [SnapshotEntry.from_string(item, include_columns=False) for item in strings]

    def prune(self, app_id: int) -> None:
        """Оставляет max_history_versions - 1 последних снимков приложения"""
        keys = self.store.keys(self._app_prefix(app_id))
        keep = max(self.max_history_versions - 1, 0)
        for key in keys[:max(len(keys) - keep, 0)]:
            self.store.delete(key)

    def evict_app(self, app_id: int) -> None:
        for key in self.store.keys(self._app_prefix(app_id)):
            self.store.delete(key)

    def evict_all(self) -> None:
        for key in self.store.keys():
            self.store.delete(key)

    def persist(self, version: Version, entries: List[SnapshotEntry]) -> List[SnapshotEntry]:
        # У большого приложения без изменений снимок не сохраняется
        if not entries:
            return []

        payload = json.dumps([entry.to_compact() for entry in entries], ensure_ascii=False)
        key = self._key(version)
        try:
            self.prune(version.app_id)
            attempts = (None, lambda: self.evict_app(version.app_id), self.evict_all)
            for evict in attempts:
                if evict is not None:
                    evict()
                try:
                    self.store.put(key, payload)
                    return entries
                except StorageQuotaError:
                    logger.warning("Snapshot quota exceeded for app %s, evicting history", version.app_id)
        except (OSError, StorageError):
            logger.exception("Failed to store snapshot for version %s", version.id)
            return []

        logger.error("Skipping snapshot for version %s: quota exceeded after eviction", version.id)
        return []

    def attach(self, version: Version) -> Version:
        raw = self.store.get(self._key(version))
        version.strings_snapshot = [SnapshotEntry.from_compact(data) for data in json.loads(raw)] if raw else []
        return version

    def forget(self, app_id: int) -> None:
        self.evict_app(app_id)
