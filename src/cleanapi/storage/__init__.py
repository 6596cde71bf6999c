"""Clean API Storage Layer - SQLAlchemy adapters (Postgres, SQLite), models and repositories."""

from .base import StorageAdapter
from .postgres_adapter import PostgresAdapter, PostgresConfig
from .sqlite_adapter import SQLiteAdapter, SQLiteConfig
from .models import Base, UserModel, ProductModel
from .models_access_control import PolicyDocumentModel, PolicyStatementModel
from .models_audit import AuditLogModel

__all__ = [
    "StorageAdapter",
    "PostgresAdapter",
    "PostgresConfig",
    "SQLiteAdapter",
    "SQLiteConfig",
    "Base",
    "UserModel",
    "ProductModel",
    "PolicyDocumentModel",
    "PolicyStatementModel",
    "AuditLogModel",
]
