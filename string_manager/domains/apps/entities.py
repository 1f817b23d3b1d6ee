from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class App:
    """Приложение проекта со своей таблицей строк"""

    id: int
    project_id: int
    name: str
    current_version: int = 1
    columns: Optional[List[str]] = None
    key_column: Optional[str] = None
    value_column: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __repr__(self) -> str:
        return f"App(id={self.id}, name={self.name}, current_version={self.current_version})"
