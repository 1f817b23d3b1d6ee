"""
Локальное хранилище снимков версий с ограничением по объему.

Значения хранятся в памяти и, если задан каталог, дублируются в файлы
``{key}.json``. Объем считается как сумма длин ключей и значений в байтах.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from string_manager.core.exceptions import StorageQuotaError

logger = logging.getLogger(__name__)


class LocalSnapshotStore:
    """Хранилище ключ -> JSON-строка с квотой"""

    def __init__(self, directory: Optional[Union[str, Path]] = None, quota_bytes: int = 5 * 1024 * 1024):
        self.directory = Path(directory) if directory else None
        self.quota_bytes = quota_bytes
        self._values: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if self.directory is None or not self.directory.exists():
            return
        for path in sorted(self.directory.glob("*.json")):
            try:
                self._values[path.stem] = path.read_text(encoding="utf-8")
            except OSError:
                logger.exception("Failed to read snapshot file %s", path)

    @staticmethod
    def _size(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def usage(self) -> int:
        """Текущий объем в байтах"""
        return sum(self._size(key, value) for key, value in self._values.items())

    def put(self, key: str, value: str) -> None:
        """Сохранение значения; при превышении квоты StorageQuotaError"""
        current = self._values.get(key)
        used = self.usage() - (self._size(key, current) if current is not None else 0)
        if used + self._size(key, value) > self.quota_bytes:
            raise StorageQuotaError(f"Snapshot quota of {self.quota_bytes} bytes exceeded")

        if self.directory is not None:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / f"{key}.json").write_text(value, encoding="utf-8")
        self._values[key] = value

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def delete(self, key: str) -> bool:
        if self._values.pop(key, None) is None:
            return False
        if self.directory is not None:
            (self.directory / f"{key}.json").unlink(missing_ok=True)
        return True

    def keys(self, prefix: str = "") -> List[str]:
        """Ключи с заданным префиксом в порядке возрастания"""
        return sorted(key for key in self._values if key.startswith(prefix))
