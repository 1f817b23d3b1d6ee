"""
Импорт и экспорт таблицы строк приложения в CSV.

Колонки ключа и значения при импорте определяются по вхождению известных
имен без учета регистра; остальные колонки сохраняются как дополнительные.
"""

import csv
import io
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from string_manager.core.exceptions import InvalidInputError
from string_manager.db.store import RecordStore
from string_manager.domains.apps.entities import App
from string_manager.domains.strings.entities import StringItem, StringStatus

logger = logging.getLogger(__name__)

KEY_COLUMN_NAMES = ["no", "string id (key)", "string id", "key", "id", "identifier"]
VALUE_COLUMN_NAMES = [
    "default value (english)", "korean", "japanese", "spanish", "string",
    "value", "text", "english", "classification", "history note"
]


def detect_column(columns: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
    """Первая колонка, имя которой содержит одно из известных имен"""
    for column in columns:
        lowered = column.lower()
        if any(candidate in lowered for candidate in candidates):
            return column
    return None


async def import_csv(
    store: RecordStore,
    app_id: int,
    text: str,
    key_column: Optional[str] = None,
    value_column: Optional[str] = None,
    user_id: Optional[int] = None
) -> List[StringItem]:
    """Создание строк из CSV; все импортированные строки получают статус new"""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    columns = [column for column in (reader.fieldnames or []) if column]
    if not columns:
        raise InvalidInputError("CSV file has no header row")

    key_column = key_column or detect_column(columns, KEY_COLUMN_NAMES)
    value_column = value_column or detect_column(columns, VALUE_COLUMN_NAMES)
    if not key_column or key_column not in columns:
        raise InvalidInputError(f"Key column not found. Available columns: {', '.join(columns)}")
    if not value_column or value_column not in columns:
        raise InvalidInputError(f"Value column not found. Available columns: {', '.join(columns)}")

    created = []
    for row in reader:
        key = (row.get(key_column) or "").strip()
        value = (row.get(value_column) or "").strip()
        if not key or not value:
            continue

        additional = {
            column: row.get(column) or ""
            for column in columns
            if column not in (key_column, value_column)
        }
        created.append(await store.create_string(app_id, {
            "key": key,
            "value": value,
            "additional_columns": additional or None,
            "status": StringStatus.NEW,
            "modified_at": datetime.utcnow(),
            "modified_by": user_id,
        }))

    await store.update_app(app_id, {
        "columns": columns,
        "key_column": key_column,
        "value_column": value_column,
    })
    logger.info("Imported %s strings into app %s", len(created), app_id)
    return created


def export_csv(app: App, strings: Sequence[StringItem]) -> str:
    """Таблица строк в CSV; все ячейки в кавычках"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    if app.columns:
        writer.writerow(["#", *app.columns, "Status"])
    else:
        writer.writerow(["#", "String Key", "String Value", "Status"])

    for position, item in enumerate(strings, start=1):
        row = [position]
        if app.columns:
            for column in app.columns:
                if column == app.key_column:
                    row.append(item.key)
                elif column == app.value_column:
                    row.append(item.value)
                else:
                    row.append((item.additional_columns or {}).get(column) or "")
        else:
            row.extend([item.key, item.value])
        row.append(item.status.value if item.status else "")
        writer.writerow(row)

    return buffer.getvalue()
