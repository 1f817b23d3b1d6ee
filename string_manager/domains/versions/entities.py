from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from string_manager.domains.strings.entities import StringItem, StringStatus


class ChangeLabel(str, Enum):
    """Метка изменения в уведомлениях и списке ожидающих изменений"""
    NEW = "New"
    MODIFIED = "Modified"

    @classmethod
    def from_status(cls, status: StringStatus) -> "ChangeLabel":
        return cls.NEW if status == StringStatus.NEW else cls.MODIFIED


@dataclass
class SnapshotEntry:
    """Копия строки на момент публикации"""

    id: int
    key: str
    value: str
    status: Optional[StringStatus] = None
    modified_at: Optional[datetime] = None
    additional_columns: Optional[Dict[str, str]] = None

    @classmethod
    def from_string(cls, item: StringItem, include_columns: bool = True) -> "SnapshotEntry":
        return cls(
            id=item.id,
            key=item.key,
            value=item.value,
            status=item.status,
            modified_at=item.modified_at,
            additional_columns=dict(item.additional_columns) if include_columns and item.additional_columns else None,
        )

    def to_compact(self) -> Dict[str, Any]:
        """Компактное представление для хранилища с ограниченным объемом"""
        return {
            "i": self.id,
            "k": self.key,
            "v": self.value,
            "s": self.status.value if self.status else None,
            "m": self.modified_at.isoformat() if self.modified_at else None,
        }

    @classmethod
    def from_compact(cls, data: Dict[str, Any]) -> "SnapshotEntry":
        return cls(
            id=data["i"],
            key=data["k"],
            value=data["v"],
            status=StringStatus(data["s"]) if data.get("s") else None,
            modified_at=datetime.fromisoformat(data["m"]) if data.get("m") else None,
        )


@dataclass
class Notification:
    """Запись об изменении строки, вошедшем в версию"""

    id: str
    status: ChangeLabel
    string_number: int
    string_id: str
    modified_at: datetime


@dataclass
class PendingChange:
    """Неопубликованное изменение; вычисляется при каждом чтении"""

    id: int
    label: ChangeLabel
    position: int
    key: str
    modified_at: Optional[datetime] = None


@dataclass
class NewVersion:
    """Данные версии до сохранения"""

    app_id: int
    version_number: int
    publisher_id: Optional[int] = None
    publisher_name: Optional[str] = None
    notes: Optional[str] = None
    strings_snapshot: List[SnapshotEntry] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    published_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class Version:
    """Опубликованная версия приложения; неизменяема после создания"""

    id: int
    app_id: int
    version_number: int
    publisher_id: Optional[int] = None
    publisher_name: Optional[str] = None
    notes: Optional[str] = None
    strings_snapshot: List[SnapshotEntry] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)
    published_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_new(cls, version_id: int, new_version: NewVersion) -> "Version":
        return cls(
            id=version_id,
            app_id=new_version.app_id,
            version_number=new_version.version_number,
            publisher_id=new_version.publisher_id,
            publisher_name=new_version.publisher_name,
            notes=new_version.notes,
            strings_snapshot=list(new_version.strings_snapshot),
            notifications=list(new_version.notifications),
            published_at=new_version.published_at,
        )

    def __repr__(self) -> str:
        return f"Version(id={self.id}, app_id={self.app_id}, version={self.version_number})"
