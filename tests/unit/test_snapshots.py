"""Quota-limited snapshot store and the snapshot policies built on it."""

import json
from datetime import datetime

import pytest

from string_manager.core.exceptions import StorageQuotaError
from string_manager.db.snapshot_store import LocalSnapshotStore
from string_manager.domains.strings.entities import StringItem, StringStatus
from string_manager.domains.versions.entities import SnapshotEntry, Version
from string_manager.domains.versions.snapshots import FullSnapshotPolicy, QuotaSnapshotPolicy


def make_strings(count, pending=()):
    return [
        StringItem(
            id=i,
            app_id=1,
            key=str(i),
            value=f"value {i}",
            additional_columns={"Korean": f"값 {i}"},
            status=StringStatus.MODIFIED if i in pending else None,
            modified_at=datetime(2026, 3, 1) if i in pending else None,
        )
        for i in range(1, count + 1)
    ]


def make_version(version_id, app_id=1):
    return Version(id=version_id, app_id=app_id, version_number=version_id)


class TestLocalSnapshotStore:
    def test_put_get_delete(self, tmp_path):
        store = LocalSnapshotStore(tmp_path, quota_bytes=1024)

        store.put("a", "[1]")

        assert store.get("a") == "[1]"
        assert (tmp_path / "a.json").read_text() == "[1]"
        assert store.delete("a")
        assert store.get("a") is None
        assert not (tmp_path / "a.json").exists()

    def test_quota_is_enforced(self):
        store = LocalSnapshotStore(None, quota_bytes=10)

        store.put("k", "12345")
        with pytest.raises(StorageQuotaError):
            store.put("k2", "123456789")

        assert store.usage() == 6

    def test_replacing_a_value_does_not_count_twice(self):
        store = LocalSnapshotStore(None, quota_bytes=10)

        store.put("k", "123456789")
        store.put("k", "987654321")

        assert store.get("k") == "987654321"

    def test_reload_from_directory(self, tmp_path):
        LocalSnapshotStore(tmp_path).put("0000000001-0000000001", "[]")

        reloaded = LocalSnapshotStore(tmp_path)

        assert reloaded.keys() == ["0000000001-0000000001"]


class TestFullSnapshotPolicy:
    def test_keeps_every_string_with_columns(self):
        entries = FullSnapshotPolicy().build(1, make_strings(3, pending={2}))

        assert [entry.id for entry in entries] == [1, 2, 3]
        assert entries[0].additional_columns == {"Korean": "값 1"}
        assert entries[1].status == StringStatus.MODIFIED


class TestQuotaSnapshotPolicy:
    def test_small_app_keeps_all_strings_without_columns(self):
        policy = QuotaSnapshotPolicy(LocalSnapshotStore(None), large_app_threshold=10)

        entries = policy.build(1, make_strings(5, pending={3}))

        assert len(entries) == 5
        assert all(entry.additional_columns is None for entry in entries)

    def test_large_app_keeps_only_pending_strings(self):
        policy = QuotaSnapshotPolicy(LocalSnapshotStore(None), large_app_threshold=1600)

        entries = policy.build(1, make_strings(2000, pending={5, 50, 500, 1000, 1999}))

        assert [entry.id for entry in entries] == [5, 50, 500, 1000, 1999]

    def test_persist_writes_compact_encoding(self):
        store = LocalSnapshotStore(None)
        policy = QuotaSnapshotPolicy(store)
        entries = policy.build(1, make_strings(2, pending={1}))

        policy.persist(make_version(7), entries)

        data = json.loads(store.get("0000000001-0000000007"))
        assert data[0] == {"i": 1, "k": "1", "v": "value 1", "s": "modified", "m": "2026-03-01T00:00:00"}
        assert set(data[1]) == {"i", "k", "v", "s", "m"}

    def test_large_app_without_changes_stores_nothing(self):
        store = LocalSnapshotStore(None)
        policy = QuotaSnapshotPolicy(store, large_app_threshold=10)
        entries = policy.build(1, make_strings(20))

        assert policy.persist(make_version(1), entries) == []
        assert store.keys() == []

    def test_history_is_pruned_to_recent_versions(self):
        store = LocalSnapshotStore(None)
        policy = QuotaSnapshotPolicy(store, max_history_versions=3)
        entries = policy.build(1, make_strings(1))

        for version_id in range(1, 6):
            policy.persist(make_version(version_id), entries)

        assert store.keys() == ["0000000001-0000000003", "0000000001-0000000004", "0000000001-0000000005"]

    def test_quota_failure_evicts_same_app_first(self):
        entries = [SnapshotEntry(id=1, key="1", value="x" * 40)]
        payload_size = len(json.dumps([entries[0].to_compact()])) + len("0000000001-0000000001")
        store = LocalSnapshotStore(None, quota_bytes=payload_size * 2 + 5)
        policy = QuotaSnapshotPolicy(store, max_history_versions=10)
        store.put("0000000002-0000000001", "y" * (payload_size - 21))

        policy.persist(make_version(1, app_id=1), entries)
        stored = policy.persist(make_version(2, app_id=1), entries)

        assert stored == entries
        assert store.keys() == ["0000000001-0000000002", "0000000002-0000000001"]

    def test_quota_failure_evicts_other_apps_next(self):
        entries = [SnapshotEntry(id=1, key="1", value="x" * 40)]
        store = LocalSnapshotStore(None, quota_bytes=120)
        store.put("0000000002-0000000001", "y" * 60)
        policy = QuotaSnapshotPolicy(store)

        stored = policy.persist(make_version(1, app_id=1), entries)

        assert stored == entries
        assert store.keys() == ["0000000001-0000000001"]

    def test_snapshot_is_skipped_when_it_never_fits(self):
        store = LocalSnapshotStore(None, quota_bytes=10)
        policy = QuotaSnapshotPolicy(store)

        stored = policy.persist(make_version(1), [SnapshotEntry(id=1, key="1", value="too large")])

        assert stored == []
        assert store.keys() == []

    def test_attach_reads_snapshot_back(self):
        store = LocalSnapshotStore(None)
        policy = QuotaSnapshotPolicy(store)
        policy.persist(make_version(3), policy.build(1, make_strings(2, pending={2})))

        version = policy.attach(make_version(3))

        assert [entry.key for entry in version.strings_snapshot] == ["1", "2"]
        assert version.strings_snapshot[1].status == StringStatus.MODIFIED
        assert version.strings_snapshot[1].modified_at == datetime(2026, 3, 1)

    def test_attach_evicted_snapshot_is_empty(self):
        policy = QuotaSnapshotPolicy(LocalSnapshotStore(None))

        assert policy.attach(make_version(9)).strings_snapshot == []

    def test_forget_removes_app_snapshots(self):
        store = LocalSnapshotStore(None)
        policy = QuotaSnapshotPolicy(store)
        policy.persist(make_version(1, app_id=1), policy.build(1, make_strings(1)))
        policy.persist(make_version(2, app_id=2), policy.build(2, make_strings(1)))

        policy.forget(1)

        assert store.keys() == ["0000000002-0000000002"]
