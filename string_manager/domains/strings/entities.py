from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class StringStatus(str, Enum):
    """Состояние строки относительно последней публикации"""
    NEW = "new"
    MODIFIED = "modified"


@dataclass
class StringItem:
    """Переводимая строка приложения"""

    id: int
    app_id: int
    key: str
    value: str
    additional_columns: Optional[Dict[str, str]] = None
    status: Optional[StringStatus] = None
    modified_at: Optional[datetime] = None
    modified_by: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_pending(self) -> bool:
        """Есть ли неопубликованные изменения"""
        return self.status in (StringStatus.NEW, StringStatus.MODIFIED)

    def status_after_edit(self) -> StringStatus:
        """Новая строка остается new, остальные становятся modified"""
        if self.status == StringStatus.NEW:
            return StringStatus.NEW
        return StringStatus.MODIFIED

    def same_content(self, other: "StringItem") -> bool:
        """Совпадают ли редактируемые поля и отметка об изменении"""
        return (
            self.key == other.key
            and self.value == other.value
            and (self.additional_columns or None) == (other.additional_columns or None)
            and self.status == other.status
            and self.modified_at == other.modified_at
        )

    def __repr__(self) -> str:
        return f"StringItem(id={self.id}, key={self.key}, status={self.status})"
