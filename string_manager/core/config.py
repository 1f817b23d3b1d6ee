from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Хранилище записей: memory | sql | document
    storage_backend: Literal["memory", "sql", "document"] = "memory"

    database_url: str = "sqlite+aiosqlite:///./data/string-manager.db"
    sql_echo: bool = False
    sql_create_schema: bool = True

    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "string-manager"

    memory_db_path: str = "data/memory-db.json"

    # Снимки версий: full (полный снимок в записи версии) | quota (локальное хранилище с лимитом)
    snapshot_mode: Literal["full", "quota"] = "full"
    snapshot_dir: str = "data/history"
    snapshot_quota_bytes: int = 5 * 1024 * 1024
    large_app_threshold: int = 1600
    max_history_versions: int = 3

    # Временная фиксированная учетная запись вместо аутентификации
    default_user_email: str = "admin@example.com"
    default_user_name: str = "Admin User"
    bootstrap_sample_data: bool = True

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
