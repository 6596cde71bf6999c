from typing import Generator
from sqlalchemy.orm import Session

from cleanapi.platform.config import settings
from cleanapi.storage.base import StorageAdapter
from cleanapi.storage.postgres_adapter import PostgresAdapter, PostgresConfig
from cleanapi.storage.sqlite_adapter import SQLiteAdapter, SQLiteConfig

# Singletons
_storage_adapter: StorageAdapter | None = None

def get_storage_adapter() -> StorageAdapter:
    global _storage_adapter
    if not _storage_adapter:
        if settings.DATABASE_BACKEND == "sqlite":
            _storage_adapter = SQLiteAdapter(SQLiteConfig())
        elif settings.DATABASE_BACKEND == "postgres":
            _storage_adapter = PostgresAdapter(PostgresConfig())
        else:
            raise ValueError(f"Unsupported DATABASE_BACKEND: {settings.DATABASE_BACKEND}")
    return _storage_adapter

def get_db() -> Generator[Session, None, None]:
    adapter = get_storage_adapter()
    with adapter.get_session() as session:
        yield session

def close_storage_adapter():
    global _storage_adapter
    if _storage_adapter:
        _storage_adapter.close()
        _storage_adapter = None
