"""Local cache of remote Postman identifiers.

The cache maps local names to the remote objects they were last published
to, so repeated uploads can skip the name lookups. It is stored as one flat
JSON object::

    {
      "postman-workspace": {"id": "1f0df51a", "name": "Team", "type": "team"},
      "Orders API": {"name": "Orders API", "uid": "12345-abc123"}
    }

The workspace record lives under ``WORKSPACE_KEY``; every other key is a
collection name. The cache is advisory: a missing or corrupt file is an
empty cache, and failing to write it never fails a sync.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from ..config import DEFAULT_CACHE_FILE

logger = logging.getLogger(__name__)

WORKSPACE_KEY = "postman-workspace"


@dataclass
class WorkspaceRecord:
    """Workspace collections are published to."""

    id: str
    name: str
    type: str = "personal"

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "type": self.type}


@dataclass
class CollectionRecord:
    """Remote collection a local collection was last published to."""

    name: str
    uid: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "uid": self.uid}


CacheRecord = Union[WorkspaceRecord, CollectionRecord]


def record_from_dict(key: str, data: Any) -> Optional[CacheRecord]:
    """Build the record stored under ``key``.

    Returns:
        The record, or None if the stored value has the wrong shape
    """
    if not isinstance(data, dict):
        return None
    if key == WORKSPACE_KEY:
        if not data.get("id"):
            return None
        return WorkspaceRecord(
            id=str(data["id"]),
            name=data.get("name", ""),
            type=data.get("type", "personal"),
        )
    if not data.get("uid"):
        return None
    return CollectionRecord(name=data.get("name", key), uid=str(data["uid"]))


class SyncCache:
    """JSON file backed cache of workspace and collection identifiers."""

    def __init__(self, path: Union[str, Path, None] = None):
        """Initialize the cache.

        Args:
            path: Cache file location. Defaults to ./tmp/.portman.cache
        """
        self.path = Path(path or DEFAULT_CACHE_FILE)
        self._records: dict[str, CacheRecord] = {}

    def load(self) -> "SyncCache":
        """Replace the in-memory records with the file contents.

        Returns:
            self, for chaining
        """
        self._records = {}

        if not self.path.exists():
            logger.debug(f"No sync cache found at {self.path}")
            return self

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable sync cache {self.path}: {e}")
            return self

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed sync cache {self.path}")
            return self

        for key, value in data.items():
            record = record_from_dict(key, value)
            if record is None:
                logger.debug(f"Skipping malformed cache entry '{key}'")
                continue
            self._records[key] = record

        logger.debug(f"Loaded {len(self._records)} cache entries from {self.path}")
        return self

    def save(self) -> bool:
        """Write the cache to disk.

        Returns:
            True if the file was written, False if writing failed
        """
        data = {key: record.to_dict() for key, record in self._records.items()}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save sync cache to {self.path}: {e}")
            return False
        logger.debug(f"Saved {len(data)} cache entries to {self.path}")
        return True

    def get(self, key: str) -> Optional[CacheRecord]:
        return self._records.get(key)

    def put(self, key: str, record: CacheRecord) -> None:
        self._records[key] = record

    def invalidate(self, key: str) -> bool:
        """Drop an entry whose remote object is gone or invalid.

        Returns:
            True if an entry was removed
        """
        removed = self._records.pop(key, None) is not None
        if removed:
            logger.debug(f"Invalidated cache entry '{key}'")
        return removed

    def get_workspace(self) -> Optional[WorkspaceRecord]:
        record = self._records.get(WORKSPACE_KEY)
        return record if isinstance(record, WorkspaceRecord) else None

    def put_workspace(self, record: WorkspaceRecord) -> None:
        self._records[WORKSPACE_KEY] = record

    def invalidate_workspace(self) -> bool:
        return self.invalidate(WORKSPACE_KEY)

    def get_collection(self, name: str) -> Optional[CollectionRecord]:
        record = self._records.get(name)
        return record if isinstance(record, CollectionRecord) else None

    def put_collection(self, name: str, uid: str) -> None:
        self._records[name] = CollectionRecord(name=name, uid=uid)

    def items(self) -> list[tuple[str, CacheRecord]]:
        return list(self._records.items())

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {key: record.to_dict() for key, record in self._records.items()}

    def clear(self) -> bool:
        """Forget all entries and delete the cache file.

        Returns:
            True if a cache file existed

        Raises:
            OSError: If the file exists but cannot be deleted
        """
        self._records = {}
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Deleted sync cache at {self.path}")
            return True
        return False

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records
