from fastapi import Request

from string_manager.db.store import RecordStore
from string_manager.domains.versions.services import VersionPublisher
from string_manager.domains.versions.snapshots import SnapshotPolicy


# Зависимости для FastAPI: хранилище и публикатор создаются один раз в lifespan
def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_publisher(request: Request) -> VersionPublisher:
    return request.app.state.publisher


def get_snapshot_policy(request: Request) -> SnapshotPolicy:
    return request.app.state.publisher.policy
