# flashdeck/services/storage_service.py
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from flashdeck.config import STORAGE_BACKEND
from flashdeck.core.log_manager import logger
from flashdeck.database import engine
from flashdeck.errors import StorageError, QuotaExceededError
from flashdeck.models import StoredValue


class Storage(Protocol):
    """
    Opaque durable key/value store. Backends raise StorageError
    (or QuotaExceededError) on failure.
    """

    def load(self, key: str) -> Optional[bytes]: ...

    def save(self, key: str, value: bytes) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local store. Optional byte quota to mimic a full browser store."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: Dict[str, bytes] = {}
        self.quota_bytes = quota_bytes

    def load(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def save(self, key: str, value: bytes) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota_bytes:
                raise QuotaExceededError(f"Quota of {self.quota_bytes} bytes exceeded")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteStorage:
    """
    Key/value entries in the `storedvalue` table.
    """

    def __init__(self, engine):
        self._engine = engine

    def load(self, key: str) -> Optional[bytes]:
        try:
            with Session(self._engine) as session:
                row = session.get(StoredValue, key)
                return row.value if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read '{key}' from SQLite: {e}")
            raise StorageError(str(e)) from e

    def save(self, key: str, value: bytes) -> None:
        try:
            with Session(self._engine) as session:
                row = session.get(StoredValue, key)
                if row:
                    row.value = value
                    row.updated_at = datetime.now(timezone.utc)
                else:
                    row = StoredValue(key=key, value=value)
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write '{key}' to SQLite: {e}")
            if "full" in str(e).lower():
                raise QuotaExceededError(str(e)) from e
            raise StorageError(str(e)) from e

    def remove(self, key: str) -> None:
        try:
            with Session(self._engine) as session:
                row = session.get(StoredValue, key)
                if row:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete '{key}' from SQLite: {e}")
            raise StorageError(str(e)) from e


def create_storage(backend: str = STORAGE_BACKEND) -> Storage:
    """Builds the configured backend: 'sqlite' (default) or 'memory'."""
    if backend == "memory":
        logger.info("Using in-memory storage; nothing survives a restart")
        return MemoryStorage()
    if backend != "sqlite":
        logger.warning(f"Unknown storage backend '{backend}', falling back to sqlite")
    return SqliteStorage(engine)
