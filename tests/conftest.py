"""
Shared fixtures.

The ``store`` fixture is parametrized over every RecordStore backend so the
same contract tests run against the in-memory store, SQLite through
SQLAlchemy and the Redis document store (backed by an in-process fake).
"""

from datetime import datetime
from typing import Any, AsyncGenerator, Dict

import pytest
import pytest_asyncio

from string_manager.db.document_store import DocumentRecordStore
from string_manager.db.memory_store import MemoryRecordStore
from string_manager.db.sql_store import SqlRecordStore
from string_manager.db.store import RecordStore
from string_manager.domains.strings.entities import StringStatus
from tests.helpers.fake_redis import FakeRedis


@pytest_asyncio.fixture(params=["memory", "sql", "document"])
async def store(request, tmp_path) -> AsyncGenerator[RecordStore, None]:
    if request.param == "memory":
        record_store = MemoryRecordStore(tmp_path / "memory-db.json")
    elif request.param == "sql":
        record_store = SqlRecordStore(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    else:
        record_store = DocumentRecordStore(FakeRedis(), prefix="test")

    await record_store.initialize()
    yield record_store
    await record_store.close()


@pytest_asyncio.fixture
async def memory_store(tmp_path) -> AsyncGenerator[MemoryRecordStore, None]:
    record_store = MemoryRecordStore(tmp_path / "memory-db.json")
    await record_store.initialize()
    yield record_store
    await record_store.close()


@pytest.fixture
def string_data():
    """Factory for string payloads as services pass them to the store"""

    def make(key: str, value: str, status: StringStatus = None, **extra) -> Dict[str, Any]:
        data = {
            "key": key,
            "value": value,
            "status": status,
            "modified_at": datetime.utcnow() if status else None,
        }
        data.update(extra)
        return data

    return make


@pytest_asyncio.fixture
async def seeded(store):
    """A user owning one project with one empty app"""
    user = await store.create_user("owner@strings.io", "Owner")
    project = await store.create_project("Mobile", user.id, "Mobile apps")
    app = await store.create_app(project.id, "iOS")
    return user, project, app
