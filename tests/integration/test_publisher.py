"""Version publishing: counters, notifications, pending-state clearing and snapshots."""

import asyncio
import json
from datetime import datetime

import pytest

from string_manager.core.exceptions import InvalidInputError
from string_manager.db.memory_store import MemoryRecordStore
from string_manager.db.snapshot_store import LocalSnapshotStore
from string_manager.domains.strings.entities import StringStatus
from string_manager.domains.strings.schemas import StringCreate, StringUpdate
from string_manager.domains.strings.services import StringService
from string_manager.domains.versions.entities import ChangeLabel
from string_manager.domains.versions.schemas import VersionPublish
from string_manager.domains.versions.services import VersionPublisher, VersionService
from string_manager.domains.versions.snapshots import QuotaSnapshotPolicy


@pytest.mark.asyncio
class TestPublishScenarios:
    async def test_scenarios_a_to_c(self, store, seeded, string_data):
        user, _, app = seeded
        item = await store.create_string(app.id, string_data("1", "Hello"))
        publisher = VersionPublisher(store)
        strings = StringService(store)

        # Publishing without pending changes
        first = await publisher.publish(app.id, VersionPublish(), user.id)
        assert first.version_number == 1
        assert first.notifications == []
        assert (await store.get_app(app.id)).current_version == 2

        # Editing marks the string modified
        await strings.update_string(app.id, item.id, StringUpdate(value="Hello there"), user.id)
        changes = await strings.pending_changes(app.id)
        assert len(changes) == 1
        assert changes[0].label == ChangeLabel.MODIFIED
        assert changes[0].position == 1

        # Publishing the edit
        second = await publisher.publish(app.id, VersionPublish(), user.id)
        assert second.version_number == 2
        assert len(second.notifications) == 1
        assert second.notifications[0].status == ChangeLabel.MODIFIED
        assert second.notifications[0].string_number == 1
        assert (await store.get_string(item.id)).status is None
        assert (await store.get_app(app.id)).current_version == 3

    async def test_counter_advances_once_per_publish(self, store, seeded):
        user, _, app = seeded
        publisher = VersionPublisher(store)

        for _ in range(4):
            await publisher.publish(app.id, VersionPublish(), user.id)

        assert (await store.get_app(app.id)).current_version == 5
        assert [v.version_number for v in await store.list_versions(app.id)] == [1, 2, 3, 4]

    async def test_explicit_version_number(self, store, seeded):
        user, _, app = seeded

        version = await VersionPublisher(store).publish(app.id, VersionPublish(version_number=10, notes="Hotfix"), user.id)

        assert version.version_number == 10
        assert version.notes == "Hotfix"
        assert (await store.get_app(app.id)).current_version == 11

    async def test_reused_version_number_is_rejected(self, store, seeded):
        user, _, app = seeded
        publisher = VersionPublisher(store)
        await publisher.publish(app.id, VersionPublish(), user.id)
        await publisher.publish(app.id, VersionPublish(), user.id)

        with pytest.raises(InvalidInputError):
            await publisher.publish(app.id, VersionPublish(version_number=1), user.id)

        assert [v.version_number for v in await store.list_versions(app.id)] == [1, 2]
        assert (await store.get_app(app.id)).current_version == 3

        version = await publisher.publish(app.id, VersionPublish(), user.id)
        assert version.version_number == 3

    async def test_number_taken_by_earlier_explicit_publish_is_rejected(self, store, seeded):
        user, _, app = seeded
        publisher = VersionPublisher(store)
        await publisher.publish(app.id, VersionPublish(version_number=5), user.id)

        with pytest.raises(InvalidInputError):
            await publisher.publish(app.id, VersionPublish(version_number=5), user.id)

        assert (await publisher.publish(app.id, VersionPublish(version_number=6), user.id)).version_number == 6
        assert (await store.get_app(app.id)).current_version == 7

    async def test_non_positive_version_number_uses_counter(self, store, seeded):
        user, _, app = seeded

        version = await VersionPublisher(store).publish(app.id, VersionPublish(version_number=0), user.id)

        assert version.version_number == 1

    async def test_publish_clears_every_pending_string(self, store, seeded):
        user, _, app = seeded
        strings = StringService(store)
        for key in ("42", "greeting", "farewell"):
            await strings.create_string(app.id, StringCreate(key=key, value=f"{key} text"), user.id)

        version = await VersionPublisher(store).publish(app.id, VersionPublish(), user.id)

        assert [n.string_number for n in version.notifications] == [42, 2, 3]
        assert all(n.status == ChangeLabel.NEW for n in version.notifications)
        for item in await store.list_all_strings(app.id):
            assert item.status is None
            assert item.modified_at is None
        assert await strings.pending_changes(app.id) == []

    async def test_full_snapshot_is_stored_with_the_version(self, store, seeded, string_data):
        user, _, app = seeded
        await store.create_string(app.id, string_data("1", "Hello", additional_columns={"Korean": "안녕"}))
        await store.create_string(app.id, string_data("2", "World", StringStatus.NEW))

        version = await VersionPublisher(store).publish(app.id, VersionPublish(), user.id)

        loaded = await store.get_version(version.id)
        assert [entry.key for entry in loaded.strings_snapshot] == ["1", "2"]
        assert loaded.strings_snapshot[0].additional_columns == {"Korean": "안녕"}
        assert loaded.strings_snapshot[1].status == StringStatus.NEW

    async def test_missing_app_returns_none(self, store):
        assert await VersionPublisher(store).publish(999, VersionPublish()) is None

    async def test_concurrent_publishes_get_distinct_numbers(self, store, seeded):
        user, _, app = seeded
        publisher = VersionPublisher(store)

        versions = await asyncio.gather(*[
            publisher.publish(app.id, VersionPublish(), user.id) for _ in range(5)
        ])

        assert sorted(v.version_number for v in versions) == [1, 2, 3, 4, 5]
        assert (await store.get_app(app.id)).current_version == 6


@pytest.mark.asyncio
class TestQuotaPublishing:
    async def test_large_app_snapshot_keeps_only_pending(self, tmp_path):
        memory_store = MemoryRecordStore()
        user = await memory_store.create_user("owner@strings.io", "Owner")
        project = await memory_store.create_project("Games", user.id)
        app = await memory_store.create_app(project.id, "Big")
        pending_keys = {"10", "200", "777", "1500", "1999"}
        for i in range(1, 2001):
            key = str(i)
            await memory_store.create_string(app.id, {
                "key": key,
                "value": f"value {i}",
                "additional_columns": {"Korean": f"값 {i}"},
                "status": StringStatus.MODIFIED if key in pending_keys else None,
                "modified_at": datetime.utcnow() if key in pending_keys else None,
            })

        snapshot_store = LocalSnapshotStore(tmp_path / "history")
        policy = QuotaSnapshotPolicy(snapshot_store, large_app_threshold=1600, max_history_versions=3)
        version = await VersionPublisher(memory_store, policy).publish(app.id, VersionPublish(), user.id)

        assert sorted(entry.key for entry in version.strings_snapshot) == sorted(pending_keys)
        assert len(version.notifications) == 5
        assert sorted(n.string_number for n in version.notifications) == sorted(int(k) for k in pending_keys)

        # The version record itself carries no snapshot; the compact one lives in the snapshot store
        assert (await memory_store.get_version(version.id)).strings_snapshot == []
        stored = json.loads(snapshot_store.get(f"{app.id:010d}-{version.id:010d}"))
        assert len(stored) == 5
        assert all(set(entry) == {"i", "k", "v", "s", "m"} for entry in stored)

        reloaded = await VersionService(memory_store, VersionPublisher(memory_store, policy)).get_version(app.id, version.id)
        assert len(reloaded.strings_snapshot) == 5

    async def test_quota_failure_does_not_block_publish(self, memory_store):
        user = await memory_store.create_user("owner@strings.io", "Owner")
        project = await memory_store.create_project("Games", user.id)
        app = await memory_store.create_app(project.id, "Small")
        await memory_store.create_string(app.id, {"key": "1", "value": "Hello", "status": StringStatus.NEW})

        policy = QuotaSnapshotPolicy(LocalSnapshotStore(None, quota_bytes=10))
        version = await VersionPublisher(memory_store, policy).publish(app.id, VersionPublish(), user.id)

        assert version.strings_snapshot == []
        assert len(version.notifications) == 1
        assert (await memory_store.get_app(app.id)).current_version == 2
        assert not (await memory_store.list_all_strings(app.id))[0].is_pending


@pytest.mark.asyncio
class TestVersionService:
    async def test_version_must_belong_to_app(self, store, seeded):
        user, project, app = seeded
        other = await store.create_app(project.id, "Android")
        publisher = VersionPublisher(store)
        version = await publisher.publish(app.id, VersionPublish(), user.id)
        service = VersionService(store, publisher)

        assert (await service.get_version(app.id, version.id)).id == version.id
        assert await service.get_version(other.id, version.id) is None
        assert [v.id for v in await service.list_versions(app.id)] == [version.id]
