"""
Хранилище в памяти процесса.

Все состояние живет в словарях; после каждой изменяющей операции полный
снимок записывается в JSON-файл. Файл служит только для восстановления
после перезапуска: ошибки записи логируются и не доходят до вызывающего.
"""

import copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from string_manager.db.serialization import from_document, to_document
from string_manager.db.store import (
    APP_FIELDS, PROJECT_FIELDS, STRING_FIELDS, USER_FIELDS, RecordStore, pick_fields
)
from string_manager.domains.apps.entities import App
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Project, ProjectMember, Role
from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import NewVersion, Version

logger = logging.getLogger(__name__)

_COLLECTIONS = {
    "users": User,
    "projects": Project,
    "members": ProjectMember,
    "apps": App,
    "strings": StringItem,
    "versions": Version,
}


class MemoryRecordStore(RecordStore):
    """Хранилище записей в памяти с периодическим снимком на диск"""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._tables: Dict[str, Dict[int, Any]] = {name: {} for name in _COLLECTIONS}
        self._counters: Dict[str, int] = {name: 1 for name in _COLLECTIONS}

    async def initialize(self) -> None:
        """Загрузка сохраненного состояния, если файл существует"""
        if self.path is None or not self.path.exists():
            logger.info("No existing data file found, starting fresh")
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to load data file %s, starting fresh", self.path)
            return

        for name, entity_type in _COLLECTIONS.items():
            self._tables[name] = {
                int(record["id"]): from_document(entity_type, record)
                for record in data.get(name, [])
            }
        for name in _COLLECTIONS:
            self._counters[name] = int(data.get("counters", {}).get(name, 1))
        logger.info("Data loaded successfully from %s", self.path)

    def _persist(self) -> None:
        """Запись полного состояния в файл; ошибки только логируются"""
        if self.path is None:
            return
        try:
            data: Dict[str, Any] = {
                name: [to_document(record) for record in table.values()]
                for name, table in self._tables.items()
            }
            data["counters"] = dict(self._counters)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save data to %s", self.path)

    def _next_id(self, name: str) -> int:
        next_id = self._counters[name]
        self._counters[name] = next_id + 1
        return next_id

    def _get(self, name: str, record_id: int):
        record = self._tables[name].get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def _select(self, name: str, **criteria) -> List[Any]:
        records = [
            record for record in self._tables[name].values()
            if all(getattr(record, attr) == value for attr, value in criteria.items())
        ]
        records.sort(key=lambda record: record.id)
        return [copy.deepcopy(record) for record in records]

    def _update(self, name: str, record_id: int, data: Dict[str, Any], touch: bool):
        record = self._tables[name].get(record_id)
        if record is None:
            return None
        for attr, value in data.items():
            setattr(record, attr, copy.deepcopy(value))
        if touch:
            record.updated_at = datetime.utcnow()
        self._persist()
        return copy.deepcopy(record)

    def _delete(self, name: str, record_id: int) -> bool:
        deleted = self._tables[name].pop(record_id, None) is not None
        if deleted:
            self._persist()
        return deleted

    # Пользователи

    async def create_user(self, email: str, name: str, avatar_url: Optional[str] = None) -> User:
        if self._select("users", email=email):
            raise ValueError("User with this email already exists")
        user = User(id=self._next_id("users"), email=email, name=name, avatar_url=avatar_url)
        self._tables["users"][user.id] = user
        self._persist()
        return copy.deepcopy(user)

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._get("users", user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        users = self._select("users", email=email)
        return users[0] if users else None

    async def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[User]:
        return self._update("users", user_id, pick_fields(data, USER_FIELDS), touch=True)

    async def count_users(self) -> int:
        return len(self._tables["users"])

    # Проекты и участники

    async def create_project(self, name: str, created_by: int, description: Optional[str] = None) -> Project:
        project = Project(id=self._next_id("projects"), name=name, description=description, created_by=created_by)
        self._tables["projects"][project.id] = project
        member = ProjectMember(id=self._next_id("members"), project_id=project.id, user_id=created_by, role=Role.OWNER)
        self._tables["members"][member.id] = member
        self._persist()
        return copy.deepcopy(project)

    async def get_project(self, project_id: int) -> Optional[Project]:
        return self._get("projects", project_id)

    async def list_projects_for_user(self, user_id: int) -> List[Project]:
        project_ids = {member.project_id for member in self._tables["members"].values() if member.user_id == user_id}
        return [project for project in self._select("projects") if project.id in project_ids]

    async def update_project(self, project_id: int, data: Dict[str, Any]) -> Optional[Project]:
        return self._update("projects", project_id, pick_fields(data, PROJECT_FIELDS), touch=True)

    async def delete_project(self, project_id: int) -> bool:
        deleted = self._tables["projects"].pop(project_id, None) is not None
        if deleted:
            for member in self._select("members", project_id=project_id):
                self._tables["members"].pop(member.id, None)
            self._persist()
        return deleted

    async def get_member(self, project_id: int, user_id: int) -> Optional[ProjectMember]:
        members = self._select("members", project_id=project_id, user_id=user_id)
        return members[0] if members else None

    async def list_members(self, project_id: int) -> List[ProjectMember]:
        return self._select("members", project_id=project_id)

    async def upsert_member(self, project_id: int, user_id: int, role: Role) -> ProjectMember:
        existing = await self.get_member(project_id, user_id)
        if existing is not None:
            return self._update("members", existing.id, {"role": Role(role)}, touch=False)

        member = ProjectMember(id=self._next_id("members"), project_id=project_id, user_id=user_id, role=Role(role))
        self._tables["members"][member.id] = member
        self._persist()
        return copy.deepcopy(member)

    async def delete_member(self, project_id: int, user_id: int) -> bool:
        existing = await self.get_member(project_id, user_id)
        if existing is None:
            return False
        return self._delete("members", existing.id)

    # Приложения

    async def create_app(
        self,
        project_id: int,
        name: str,
        columns: Optional[List[str]] = None,
        key_column: Optional[str] = None,
        value_column: Optional[str] = None,
    ) -> App:
        app = App(
            id=self._next_id("apps"),
            project_id=project_id,
            name=name,
            current_version=1,
            columns=list(columns) if columns is not None else None,
            key_column=key_column,
            value_column=value_column,
        )
        self._tables["apps"][app.id] = app
        self._persist()
        return copy.deepcopy(app)

    async def get_app(self, app_id: int) -> Optional[App]:
        return self._get("apps", app_id)

    async def list_apps(self, project_id: int) -> List[App]:
        return self._select("apps", project_id=project_id)

    async def update_app(self, app_id: int, data: Dict[str, Any]) -> Optional[App]:
        return self._update("apps", app_id, pick_fields(data, APP_FIELDS), touch=True)

    async def delete_app(self, app_id: int) -> bool:
        deleted = self._tables["apps"].pop(app_id, None) is not None
        if deleted:
            for name in ("strings", "versions"):
                for record in self._select(name, app_id=app_id):
                    self._tables[name].pop(record.id, None)
            self._persist()
        return deleted

    # Строки

    async def create_string(self, app_id: int, data: Dict[str, Any]) -> StringItem:
        fields = pick_fields(data, STRING_FIELDS)
        item = StringItem(id=self._next_id("strings"), app_id=app_id, **copy.deepcopy(fields))
        self._tables["strings"][item.id] = item
        self._persist()
        return copy.deepcopy(item)

    async def get_string(self, string_id: int) -> Optional[StringItem]:
        return self._get("strings", string_id)

    async def list_strings(self, app_id: int, page: int = 1, limit: int = 50) -> Tuple[List[StringItem], int]:
        items = self._select("strings", app_id=app_id)
        start = (page - 1) * limit
        return items[start:start + limit], len(items)

    async def list_all_strings(self, app_id: int) -> List[StringItem]:
        return self._select("strings", app_id=app_id)

    async def update_string(self, string_id: int, data: Dict[str, Any]) -> Optional[StringItem]:
        return self._update("strings", string_id, pick_fields(data, STRING_FIELDS), touch=False)

    async def delete_string(self, string_id: int) -> bool:
        return self._delete("strings", string_id)

    def _clear_pending(self, app_id: int, string_ids: Optional[set] = None) -> int:
        cleared = 0
        for item in self._tables["strings"].values():
            if item.app_id != app_id or not item.is_pending:
                continue
            if string_ids is not None and item.id not in string_ids:
                continue
            item.status = None
            item.modified_at = None
            cleared += 1
        return cleared

    async def reset_pending(self, app_id: int) -> int:
        cleared = self._clear_pending(app_id)
        if cleared:
            self._persist()
        return cleared

    # Версии

    async def apply_publish(
        self,
        new_version: NewVersion,
        next_current_version: int,
        published_strings: Sequence[StringItem],
    ) -> Version:
        app = self._tables["apps"].get(new_version.app_id)
        if app is None:
            raise ValueError(f"App {new_version.app_id} does not exist")

        version = Version.from_new(self._next_id("versions"), copy.deepcopy(new_version))
        self._tables["versions"][version.id] = version
        app.current_version = next_current_version
        app.updated_at = datetime.utcnow()
        unchanged = set()
        for loaded in published_strings:
            current = self._tables["strings"].get(loaded.id)
            if current is not None and current.same_content(loaded):
                unchanged.add(loaded.id)
        self._clear_pending(app.id, unchanged)
        self._persist()
        return copy.deepcopy(version)

    async def get_version(self, version_id: int) -> Optional[Version]:
        return self._get("versions", version_id)

    async def list_versions(self, app_id: int) -> List[Version]:
        versions = self._select("versions", app_id=app_id)
        return sorted(versions, key=lambda version: (version.version_number, version.id))
