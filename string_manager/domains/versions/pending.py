"""
Ожидающие публикации изменения.

Список вычисляется заново при каждом чтении из текущего состояния строк и
нигде не хранится.
"""

import re
import time
from datetime import datetime
from typing import List, Optional, Sequence

from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import ChangeLabel, Notification, PendingChange

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_string_number(key: str) -> Optional[int]:
    """Целое число в начале ключа ("42", " 7", "12abc"), иначе None"""
    match = _LEADING_INT.match(key or "")
    if not match:
        return None
    return int(match.group(1))


def pending_changes(strings: Sequence[StringItem]) -> List[PendingChange]:
    """Строки со статусом new/modified с позицией в полном списке"""
    changes = []
    for position, item in enumerate(strings, start=1):
        if not item.is_pending:
            continue
        changes.append(
            PendingChange(
                id=item.id,
                label=ChangeLabel.from_status(item.status),
                position=position,
                key=item.key,
                modified_at=item.modified_at,
            )
        )
    return changes


def build_notifications(strings: Sequence[StringItem], published_at: datetime) -> List[Notification]:
    """Уведомления для публикуемой версии"""
    stamp = int(time.time() * 1000)
    pending = [item for item in strings if item.is_pending]

    notifications = []
    for index, item in enumerate(pending):
        # Номер берется из ключа; 0 и нечисловые ключи заменяются позицией среди изменений
        string_number = parse_string_number(item.key) or index + 1
        notifications.append(
            Notification(
                id=f"{item.id}-{stamp}-{index}",
                status=ChangeLabel.from_status(item.status),
                string_number=string_number,
                string_id=str(item.id),
                modified_at=item.modified_at or published_at,
            )
        )
    return notifications
