"""
Хранилище документов в Redis.

Каждая запись хранится как JSON-строка под ключом ``{prefix}:{kind}:{id}``.
Идентификаторы выдаются счетчиками ``{prefix}:seq:{kind}``; связи родитель ->
потомки хранятся во множествах, поиск по email и паре (проект, пользователь)
идет через хеши. Изменения нескольких ключей выполняются в MULTI/EXEC.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError, WatchError

from string_manager.core.exceptions import StorageError
from string_manager.db.serialization import from_json, to_json
from string_manager.db.store import (
    APP_FIELDS, PROJECT_FIELDS, STRING_FIELDS, USER_FIELDS, RecordStore, pick_fields
)
from string_manager.domains.apps.entities import App
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Project, ProjectMember, Role
from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import NewVersion, Version

logger = logging.getLogger(__name__)

T = TypeVar("T")

PUBLISH_ATTEMPTS = 5


class DocumentRecordStore(RecordStore):
    """Хранилище записей в Redis"""

    def __init__(self, client: aioredis.Redis, prefix: str = "string-manager"):
        self.client = client
        self.prefix = prefix

    async def initialize(self) -> None:
        async with self._guard():
            await self.client.ping()
        logger.info("Document store connected, key prefix %s", self.prefix)

    async def close(self) -> None:
        await self.client.aclose()

    # Ключи

    def _key(self, kind: str, record_id: int) -> str:
        return f"{self.prefix}:{kind}:{record_id}"

    def _children_key(self, parent: str, parent_id: int, kind: str) -> str:
        return f"{self.prefix}:{parent}:{parent_id}:{kind}"

    def _index_key(self, name: str) -> str:
        return f"{self.prefix}:index:{name}"

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        """Ошибки Redis превращаются в StorageError"""
        try:
            yield
        except RedisError as e:
            logger.error("Redis operation failed: %s", e)
            raise StorageError(f"Redis operation failed: {e}") from e

    async def _next_id(self, kind: str) -> int:
        return int(await self.client.incr(f"{self.prefix}:seq:{kind}"))

    async def _load(self, entity_type: Type[T], kind: str, record_id: int) -> Optional[T]:
        raw = await self.client.get(self._key(kind, record_id))
        return from_json(entity_type, raw) if raw is not None else None

    async def _load_many(self, entity_type: Type[T], kind: str, ids: Iterable[Any]) -> List[T]:
        ids = sorted(int(record_id) for record_id in ids)
        if not ids:
            return []
        raws = await self.client.mget([self._key(kind, record_id) for record_id in ids])
        return [from_json(entity_type, raw) for raw in raws if raw is not None]

    async def _children(self, entity_type: Type[T], parent: str, parent_id: int, kind: str) -> List[T]:
        ids = await self.client.smembers(self._children_key(parent, parent_id, kind))
        return await self._load_many(entity_type, kind, ids)

    async def _save(self, kind: str, record: Any) -> None:
        await self.client.set(self._key(kind, record.id), to_json(record))

    # Пользователи

    async def create_user(self, email: str, name: str, avatar_url: Optional[str] = None) -> User:
        async with self._guard():
            if await self.client.hexists(self._index_key("user-email"), email):
                raise ValueError("User with this email already exists")

            user = User(id=await self._next_id("users"), email=email, name=name, avatar_url=avatar_url)
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(self._key("users", user.id), to_json(user))
                pipe.hset(self._index_key("user-email"), email, user.id)
                await pipe.execute()
            return user

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self._guard():
            return await self._load(User, "users", user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self._guard():
            user_id = await self.client.hget(self._index_key("user-email"), email)
            if user_id is None:
                return None
            return await self._load(User, "users", int(user_id))

    async def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[User]:
        values = pick_fields(data, USER_FIELDS)
        async with self._guard():
            return await self._update(User, "users", user_id, values, touch=True)

    async def count_users(self) -> int:
        async with self._guard():
            return int(await self.client.hlen(self._index_key("user-email")))

    async def _update(self, entity_type: Type[T], kind: str, record_id: int, values: Dict[str, Any], touch: bool):
        record = await self._load(entity_type, kind, record_id)
        if record is None:
            return None
        for attr, value in values.items():
            setattr(record, attr, value)
        if touch:
            record.updated_at = datetime.utcnow()
        # Повторная валидация приводит значения (например, status) к типам сущности
        record = from_json(entity_type, to_json(record))
        await self._save(kind, record)
        return record

    # Проекты и участники

    def _pair(self, project_id: int, user_id: int) -> str:
        return f"{project_id}:{user_id}"

    async def create_project(self, name: str, created_by: int, description: Optional[str] = None) -> Project:
        async with self._guard():
            project = Project(
                id=await self._next_id("projects"),
                name=name,
                description=description,
                created_by=created_by
            )
            member = ProjectMember(
                id=await self._next_id("members"),
                project_id=project.id,
                user_id=created_by,
                role=Role.OWNER
            )
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(self._key("projects", project.id), to_json(project))
                self._queue_member(pipe, member)
                await pipe.execute()
            return project

    def _queue_member(self, pipe, member: ProjectMember) -> None:
        pipe.set(self._key("members", member.id), to_json(member))
        pipe.hset(self._index_key("member-pair"), self._pair(member.project_id, member.user_id), member.id)
        pipe.sadd(self._children_key("projects", member.project_id, "members"), member.id)
        pipe.sadd(self._children_key("users", member.user_id, "members"), member.id)

    async def get_project(self, project_id: int) -> Optional[Project]:
        async with self._guard():
            return await self._load(Project, "projects", project_id)

    async def list_projects_for_user(self, user_id: int) -> List[Project]:
        async with self._guard():
            memberships = await self._children(ProjectMember, "users", user_id, "members")
            return await self._load_many(Project, "projects", {member.project_id for member in memberships})

    async def update_project(self, project_id: int, data: Dict[str, Any]) -> Optional[Project]:
        values = pick_fields(data, PROJECT_FIELDS)
        async with self._guard():
            return await self._update(Project, "projects", project_id, values, touch=True)

    async def delete_project(self, project_id: int) -> bool:
        async with self._guard():
            if await self._load(Project, "projects", project_id) is None:
                return False

            members = await self._children(ProjectMember, "projects", project_id, "members")
            async with self.client.pipeline(transaction=True) as pipe:
                for member in members:
                    self._queue_member_removal(pipe, member)
                pipe.delete(
                    self._key("projects", project_id),
                    self._children_key("projects", project_id, "members"),
                    self._children_key("projects", project_id, "apps")
                )
                await pipe.execute()
            return True

    def _queue_member_removal(self, pipe, member: ProjectMember) -> None:
        pipe.delete(self._key("members", member.id))
        pipe.hdel(self._index_key("member-pair"), self._pair(member.project_id, member.user_id))
        pipe.srem(self._children_key("projects", member.project_id, "members"), member.id)
        pipe.srem(self._children_key("users", member.user_id, "members"), member.id)

    async def get_member(self, project_id: int, user_id: int) -> Optional[ProjectMember]:
        async with self._guard():
            member_id = await self.client.hget(self._index_key("member-pair"), self._pair(project_id, user_id))
            if member_id is None:
                return None
            return await self._load(ProjectMember, "members", int(member_id))

    async def list_members(self, project_id: int) -> List[ProjectMember]:
        async with self._guard():
            return await self._children(ProjectMember, "projects", project_id, "members")

    async def upsert_member(self, project_id: int, user_id: int, role: Role) -> ProjectMember:
        existing = await self.get_member(project_id, user_id)
        async with self._guard():
            if existing is not None:
                return await self._update(ProjectMember, "members", existing.id, {"role": Role(role)}, touch=False)

            member = ProjectMember(
                id=await self._next_id("members"),
                project_id=project_id,
                user_id=user_id,
                role=Role(role)
            )
            async with self.client.pipeline(transaction=True) as pipe:
                self._queue_member(pipe, member)
                await pipe.execute()
            return member

    async def delete_member(self, project_id: int, user_id: int) -> bool:
        existing = await self.get_member(project_id, user_id)
        if existing is None:
            return False
        async with self._guard():
            async with self.client.pipeline(transaction=True) as pipe:
                self._queue_member_removal(pipe, existing)
                await pipe.execute()
            return True

    # Приложения

    async def create_app(
        self,
        project_id: int,
        name: str,
        columns: Optional[List[str]] = None,
        key_column: Optional[str] = None,
        value_column: Optional[str] = None,
    ) -> App:
        async with self._guard():
            app = App(
                id=await self._next_id("apps"),
                project_id=project_id,
                name=name,
                current_version=1,
                columns=list(columns) if columns is not None else None,
                key_column=key_column,
                value_column=value_column
            )
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(self._key("apps", app.id), to_json(app))
                pipe.sadd(self._children_key("projects", project_id, "apps"), app.id)
                await pipe.execute()
            return app

    async def get_app(self, app_id: int) -> Optional[App]:
        async with self._guard():
            return await self._load(App, "apps", app_id)

    async def list_apps(self, project_id: int) -> List[App]:
        async with self._guard():
            return await self._children(App, "projects", project_id, "apps")

    async def update_app(self, app_id: int, data: Dict[str, Any]) -> Optional[App]:
        values = pick_fields(data, APP_FIELDS)
        async with self._guard():
            return await self._update(App, "apps", app_id, values, touch=True)

    async def delete_app(self, app_id: int) -> bool:
        async with self._guard():
            app = await self._load(App, "apps", app_id)
            if app is None:
                return False

            string_ids = await self.client.smembers(self._children_key("apps", app_id, "strings"))
            version_ids = await self.client.smembers(self._children_key("apps", app_id, "versions"))
            async with self.client.pipeline(transaction=True) as pipe:
                for string_id in string_ids:
                    pipe.delete(self._key("strings", int(string_id)))
                for version_id in version_ids:
                    pipe.delete(self._key("versions", int(version_id)))
                pipe.delete(
                    self._key("apps", app_id),
                    self._children_key("apps", app_id, "strings"),
                    self._children_key("apps", app_id, "versions")
                )
                pipe.srem(self._children_key("projects", app.project_id, "apps"), app_id)
                await pipe.execute()
            return True

    # Строки

    async def create_string(self, app_id: int, data: Dict[str, Any]) -> StringItem:
        values = pick_fields(data, STRING_FIELDS)
        async with self._guard():
            item = StringItem(id=await self._next_id("strings"), app_id=app_id, **values)
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(self._key("strings", item.id), to_json(item))
                pipe.sadd(self._children_key("apps", app_id, "strings"), item.id)
                await pipe.execute()
            return from_json(StringItem, to_json(item))

    async def get_string(self, string_id: int) -> Optional[StringItem]:
        async with self._guard():
            return await self._load(StringItem, "strings", string_id)

    async def list_strings(self, app_id: int, page: int = 1, limit: int = 50) -> Tuple[List[StringItem], int]:
        async with self._guard():
            ids = sorted(int(string_id) for string_id in await self.client.smembers(
                self._children_key("apps", app_id, "strings")
            ))
            start = (page - 1) * limit
            items = await self._load_many(StringItem, "strings", ids[start:start + limit])
            return items, len(ids)

    async def list_all_strings(self, app_id: int) -> List[StringItem]:
        async with self._guard():
            return await self._children(StringItem, "apps", app_id, "strings")

    async def update_string(self, string_id: int, data: Dict[str, Any]) -> Optional[StringItem]:
        values = pick_fields(data, STRING_FIELDS)
        async with self._guard():
            return await self._update(StringItem, "strings", string_id, values, touch=False)

    async def delete_string(self, string_id: int) -> bool:
        async with self._guard():
            item = await self._load(StringItem, "strings", string_id)
            if item is None:
                return False
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(self._key("strings", string_id))
                pipe.srem(self._children_key("apps", item.app_id, "strings"), string_id)
                await pipe.execute()
            return True

    def _queue_clear_pending(self, pipe, items: Iterable[StringItem]) -> int:
        cleared = 0
        for item in items:
            if not item.is_pending:
                continue
            item.status = None
            item.modified_at = None
            pipe.set(self._key("strings", item.id), to_json(item))
            cleared += 1
        return cleared

    async def reset_pending(self, app_id: int) -> int:
        async with self._guard():
            items = await self._children(StringItem, "apps", app_id, "strings")
            async with self.client.pipeline(transaction=True) as pipe:
                cleared = self._queue_clear_pending(pipe, items)
                if cleared:
                    await pipe.execute()
            return cleared

    # Версии

    async def apply_publish(
        self,
        new_version: NewVersion,
        next_current_version: int,
        published_strings: Sequence[StringItem],
    ) -> Version:
        loaded_by_id = {item.id: item for item in published_strings}
        app_key = self._key("apps", new_version.app_id)
        string_keys = [self._key("strings", string_id) for string_id in sorted(loaded_by_id)]

        async with self._guard():
            version_id = await self._next_id("versions")
            async with self.client.pipeline(transaction=True) as pipe:
                for attempt in range(1, PUBLISH_ATTEMPTS + 1):
                    try:
                        # Приложение и строки читаются под WATCH: параллельная запись отменит EXEC
                        await pipe.watch(app_key, *string_keys)
                        raw_app = await pipe.get(app_key)
                        if raw_app is None:
                            raise ValueError(f"App {new_version.app_id} does not exist")
                        raws = await pipe.mget(string_keys) if string_keys else []

                        app = from_json(App, raw_app)
                        app.current_version = next_current_version
                        app.updated_at = datetime.utcnow()
                        version = Version.from_new(version_id, new_version)
                        unchanged = [
                            current for current in (from_json(StringItem, raw) for raw in raws if raw is not None)
                            if current.app_id == app.id and current.same_content(loaded_by_id[current.id])
                        ]

                        pipe.multi()
                        pipe.set(self._key("versions", version.id), to_json(version))
                        pipe.sadd(self._children_key("apps", app.id, "versions"), version.id)
                        pipe.set(app_key, to_json(app))
                        self._queue_clear_pending(pipe, unchanged)
                        await pipe.execute()
                        return version
                    except WatchError:
                        logger.info("Publish of app %s raced with a write, attempt %s", new_version.app_id, attempt)

            raise StorageError(f"Publish of app {new_version.app_id} kept conflicting with concurrent writes")

    async def get_version(self, version_id: int) -> Optional[Version]:
        async with self._guard():
            return await self._load(Version, "versions", version_id)

    async def list_versions(self, app_id: int) -> List[Version]:
        async with self._guard():
            versions = await self._children(Version, "apps", app_id, "versions")
            return sorted(versions, key=lambda version: (version.version_number, version.id))
