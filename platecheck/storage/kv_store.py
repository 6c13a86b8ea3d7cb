# platecheck/storage/kv_store.py
"""
Key-value persistence backing both the identity store and the vehicle registry.
Each key holds one JSON document which is always read and written whole, so a
failed write leaves the previous document in place.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from platecheck.database import SessionLocal
from platecheck.exceptions import StorageError
from platecheck.models.kv_entry import KeyValueEntry
from platecheck.utils.json_parser import decode_value, encode_value
from platecheck.utils.logger import get_logger

logger = get_logger(__name__)

USERS_KEY = "users"
CURRENT_USER_KEY = "currentUser"
ALREADY_LAUNCHED_KEY = "alreadyLaunched"
VEHICLES_KEY = "vehicles"


class KeyValueStore:
    def __init__(self, session_factory: sessionmaker = None):
        self._session_factory = session_factory or SessionLocal

    async def get_item(self, key: str) -> Optional[str]:
        """Raw stored text for `key`, or None when the key is unset."""
        db = self._session_factory()
        try:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Storage read failed for key '{key}': {e}", exc_info=True)
            raise StorageError(f"Failed to read '{key}' from storage", key=key) from e
        finally:
            db.close()

    async def set_item(self, key: str, value: str):
        db = self._session_factory()
        try:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=value, updated_at=datetime.utcnow()))
            else:
                entry.value = value
                entry.updated_at = datetime.utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Storage write failed for key '{key}': {e}", exc_info=True)
            raise StorageError(f"Failed to write '{key}' to storage", key=key) from e
        finally:
            db.close()

    async def remove_item(self, key: str):
        """Delete `key`. Removing an unset key is a no-op."""
        db = self._session_factory()
        try:
            entry = db.get(KeyValueEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Storage delete failed for key '{key}': {e}", exc_info=True)
            raise StorageError(f"Failed to remove '{key}' from storage", key=key) from e
        finally:
            db.close()

    async def get_json(self, key: str) -> Any:
        raw = await self.get_item(key)
        try:
            return decode_value(raw)
        except ValueError as e:
            logger.error(f"Corrupt JSON under key '{key}': {e}")
            raise StorageError(f"Stored data for '{key}' is corrupt", key=key) from e

    async def set_json(self, key: str, value: Any):
        try:
            raw = encode_value(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot serialize data for '{key}'", key=key) from e
        await self.set_item(key, raw)
