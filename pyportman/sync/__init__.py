"""Sync engine for pyportman - publishing collections to Postman."""

from .engine import CollectionSync, CollectionTarget, PushMode
from .state import (
    WORKSPACE_KEY,
    CacheRecord,
    CollectionRecord,
    SyncCache,
    WorkspaceRecord,
)

__all__ = [
    "CollectionSync",
    "CollectionTarget",
    "PushMode",
    "SyncCache",
    "CacheRecord",
    "CollectionRecord",
    "WorkspaceRecord",
    "WORKSPACE_KEY",
]
