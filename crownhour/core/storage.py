"""
Durable client-side key/value storage.

Stores persist a small projection of their state under a fixed key so that a
guest's cart and wishlist survive a restart. Three backends are available:

- memory: process-local, used by tests and throwaway sessions
- file: a single JSON document on disk (default)
- mongo: a MongoDB collection, one document per key
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from crownhour.core.config import Settings

logger = logging.getLogger(__name__)


class StateStorage(ABC):
    """Async key/value storage for persisted store projections."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored value for key, or None."""

    @abstractmethod
    async def set(self, key: str, value: Dict[str, Any]) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key if present."""


class MemoryStorage(StateStorage):
    """In-process storage."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._data: Dict[str, Dict[str, Any]] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.loads(json.dumps(value))

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        # Hand out copies so callers never mutate what is stored
        return json.loads(json.dumps(value)) if value is not None else None

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = json.loads(json.dumps(value))

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data.keys())


class JsonFileStorage(StateStorage):
    """
    Storage backed by one JSON file holding every key.

    Writes go to a temporary file in the same directory which then replaces
    the original, so a crash mid-write never leaves a truncated document.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {str(e)}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self._read_all().get(key)

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    async def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class MongoStorage(StateStorage):
    """Storage backed by a MongoDB collection, keyed by _id."""

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "client_state"):
        self.collection = db[collection_name]

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        document = await self.collection.find_one({"_id": key})
        if not document:
            return None
        return document.get("value")

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        await self.collection.update_one(
            {"_id": key},
            {"$set": {
                "value": value,
                "updated_at": datetime.utcnow()
            }},
            upsert=True
        )

    async def remove(self, key: str) -> None:
        await self.collection.delete_one({"_id": key})


def get_storage(settings: Settings, db: Optional[AsyncIOMotorDatabase] = None) -> StateStorage:
    """
    Build the storage backend selected by STORAGE_BACKEND.

    Raises:
        ValueError: If the backend is unknown, or mongo is selected without a database
    """
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "memory":
        return MemoryStorage()

    if backend == "file":
        return JsonFileStorage(settings.STORAGE_PATH)

    if backend == "mongo":
        if db is None:
            raise ValueError("MongoDB storage requires a connected database")
        return MongoStorage(db, settings.MONGODB_STATE_COLLECTION)

    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
