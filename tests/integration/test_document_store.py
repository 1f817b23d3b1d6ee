"""Redis-specific behavior of DocumentRecordStore."""

from datetime import datetime

import pytest
from redis.exceptions import WatchError

from string_manager.core.exceptions import StorageError
from string_manager.db.document_store import DocumentRecordStore
from string_manager.domains.strings.entities import StringStatus
from string_manager.domains.versions.entities import NewVersion
from tests.helpers.fake_redis import FakePipeline, FakeRedis


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def document_store(redis_client):
    return DocumentRecordStore(redis_client, prefix="sm")


@pytest.mark.asyncio
class TestDocumentRecordStore:
    async def test_records_are_json_documents_under_prefixed_keys(self, document_store, redis_client):
        user = await document_store.create_user("ana@strings.io", "Ana")

        assert f"sm:users:{user.id}" in redis_client.strings
        assert redis_client.hashes["sm:index:user-email"]["ana@strings.io"] == str(user.id)
        assert redis_client.strings["sm:seq:users"] == "1"

    async def test_project_and_owner_written_in_one_pipeline(self, document_store, redis_client):
        user = await document_store.create_user("ana@strings.io", "Ana")
        before = redis_client.executed_pipelines

        project = await document_store.create_project("Mobile", user.id)

        assert redis_client.executed_pipelines == before + 1
        assert redis_client.sets[f"sm:projects:{project.id}:members"]

    async def test_publish_written_in_one_pipeline(self, document_store, redis_client):
        user = await document_store.create_user("ana@strings.io", "Ana")
        project = await document_store.create_project("Mobile", user.id)
        app = await document_store.create_app(project.id, "iOS")
        before = redis_client.executed_pipelines

        await document_store.apply_publish(NewVersion(app_id=app.id, version_number=1), 2, [])

        assert redis_client.executed_pipelines == before + 1

    async def test_publish_retries_when_string_changes_under_watch(self, document_store, redis_client):
        user = await document_store.create_user("ana@strings.io", "Ana")
        project = await document_store.create_project("Mobile", user.id)
        app = await document_store.create_app(project.id, "iOS")
        item = await document_store.create_string(
            app.id, {"key": "1", "value": "Hello", "status": StringStatus.NEW, "modified_at": datetime.utcnow()}
        )
        loaded = await document_store.list_all_strings(app.id)
        redis_client.after_watched_read = lambda: document_store.update_string(item.id, {"value": "Hello EDITED"})

        version = await document_store.apply_publish(NewVersion(app_id=app.id, version_number=1), 2, loaded)

        current = await document_store.get_string(item.id)
        assert current.value == "Hello EDITED"
        assert current.status == StringStatus.NEW
        assert (await document_store.get_app(app.id)).current_version == 2
        assert [v.id for v in await document_store.list_versions(app.id)] == [version.id]

    async def test_publish_gives_up_after_repeated_conflicts(self, document_store, redis_client, monkeypatch):
        user = await document_store.create_user("ana@strings.io", "Ana")
        project = await document_store.create_project("Mobile", user.id)
        app = await document_store.create_app(project.id, "iOS")

        async def always_conflict(*args):
            raise WatchError("Watched variable changed.")

        monkeypatch.setattr(FakePipeline, "execute", always_conflict)

        with pytest.raises(StorageError):
            await document_store.apply_publish(NewVersion(app_id=app.id, version_number=1), 2, [])
        assert (await document_store.get_app(app.id)).current_version == 1

    async def test_redis_errors_become_storage_errors(self, document_store, redis_client):
        redis_client.break_connection()

        with pytest.raises(StorageError):
            await document_store.get_user(1)

    async def test_close_releases_client(self, document_store, redis_client):
        await document_store.close()

        assert redis_client.closed
