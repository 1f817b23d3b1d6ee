import logging

import redis.asyncio as aioredis

from string_manager.core.config import Settings
from string_manager.db.document_store import DocumentRecordStore
from string_manager.db.memory_store import MemoryRecordStore
from string_manager.db.snapshot_store import LocalSnapshotStore
from string_manager.db.sql_store import SqlRecordStore
from string_manager.db.store import RecordStore
from string_manager.domains.versions.snapshots import FullSnapshotPolicy, QuotaSnapshotPolicy, SnapshotPolicy

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    """Хранилище записей по настройке storage_backend"""
    logger.info("Using %s storage backend", settings.storage_backend)

    if settings.storage_backend == "sql":
        return SqlRecordStore(
            settings.database_url,
            echo=settings.sql_echo,
            create_schema=settings.sql_create_schema
        )

    if settings.storage_backend == "document":
        client = aioredis.from_url(settings.redis_url, decode_responses=True, socket_timeout=5.0)
        return DocumentRecordStore(client, prefix=settings.redis_key_prefix)

    return MemoryRecordStore(settings.memory_db_path)


def build_snapshot_policy(settings: Settings) -> SnapshotPolicy:
    """Политика снимков по настройке snapshot_mode"""
    if settings.snapshot_mode == "quota":
        return QuotaSnapshotPolicy(
            LocalSnapshotStore(settings.snapshot_dir, settings.snapshot_quota_bytes),
            large_app_threshold=settings.large_app_threshold,
            max_history_versions=settings.max_history_versions
        )
    return FullSnapshotPolicy()
