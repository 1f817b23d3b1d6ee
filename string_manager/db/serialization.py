from typing import Any, Dict, List, Type, TypeVar

from pydantic import TypeAdapter

from string_manager.domains.apps.entities import App
from string_manager.domains.identity.entities import User
from string_manager.domains.projects.entities import Project, ProjectMember
from string_manager.domains.strings.entities import StringItem
from string_manager.domains.versions.entities import Notification, SnapshotEntry, Version

T = TypeVar("T")

_ADAPTERS: Dict[type, TypeAdapter] = {
    entity: TypeAdapter(entity)
    for entity in (User, Project, ProjectMember, App, StringItem, Version)
}


def to_document(entity: Any) -> Dict[str, Any]:
    """Сущность в JSON-совместимый словарь"""
    return _ADAPTERS[type(entity)].dump_python(entity, mode="json")


def from_document(entity_type: Type[T], data: Dict[str, Any]) -> T:
    """JSON-совместимый словарь в сущность"""
    return _ADAPTERS[entity_type].validate_python(data)


def to_json(entity: Any) -> str:
    return _ADAPTERS[type(entity)].dump_json(entity).decode()


def from_json(entity_type: Type[T], raw) -> T:
    return _ADAPTERS[entity_type].validate_json(raw)


_SNAPSHOT = TypeAdapter(List[SnapshotEntry])
_NOTIFICATIONS = TypeAdapter(List[Notification])


def dump_snapshot(entries: List[SnapshotEntry]) -> List[Dict[str, Any]]:
    return _SNAPSHOT.dump_python(entries, mode="json")


def load_snapshot(data) -> List[SnapshotEntry]:
    return _SNAPSHOT.validate_python(data or [])


def dump_notifications(notifications: List[Notification]) -> List[Dict[str, Any]]:
    return _NOTIFICATIONS.dump_python(notifications, mode="json")


def load_notifications(data) -> List[Notification]:
    return _NOTIFICATIONS.validate_python(data or [])
