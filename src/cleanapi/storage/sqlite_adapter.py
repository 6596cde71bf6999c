from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
from contextlib import contextmanager
import logging

from pydantic_settings import BaseSettings
from .base import StorageAdapter
from .models import Base

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

class SQLiteConfig(BaseSettings):
    """Configuration for the embedded SQLite store."""
    SQLITE_PATH: str = "data/cleanapi.db"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def connection_string(self) -> str:
        return f"sqlite:///{self.SQLITE_PATH}"

    @property
    def in_memory(self) -> bool:
        return self.SQLITE_PATH == MEMORY_PATH

class SQLiteAdapter(StorageAdapter):
    """
    SQLAlchemy-based SQLite adapter, used for local runs and tests.

    An in-memory database shares a single connection (StaticPool) so every
    session sees the same data.
    """

    def __init__(self, config: SQLiteConfig):
        self.config = config
        self._engine = None
        self._session_factory = None

    @property
    def session_factory(self) -> sessionmaker:
        if not self._session_factory:
            raise ConnectionError("SQLite is not connected. Call connect() first.")
        return self._session_factory

    def connect(self) -> None:
        if self._engine:
            return

        logger.info(f"Opening SQLite database at {self.config.SQLITE_PATH}")
        kwargs = {"connect_args": {"check_same_thread": False}}
        if self.config.in_memory:
            kwargs["poolclass"] = StaticPool

        try:
            self._engine = create_engine(self.config.connection_string, **kwargs)
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        except SQLAlchemyError as e:
            logger.error(f"Failed to open SQLite database: {e}")
            raise

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("SQLite database closed.")

    def health_check(self) -> bool:
        if not self._engine:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("sqlite unhealthy")
            return False

    def create_schema(self) -> None:
        if not self._engine:
            raise ConnectionError("SQLite is not connected. Call connect() first.")
        Base.metadata.create_all(bind=self._engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
