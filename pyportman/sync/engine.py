"""Publishing of a local collection to Postman.

The sync runs as a small state machine::

    ResolveWorkspace -> ResolveCollection -> Push -> Interpret
                              ^                          |
                              +------ Retry (once) ------+

A cached collection uid that Postman refuses to update is dropped from the
cache and the collection is resolved again by name, which either finds the
right remote collection or ends up creating a new one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..api import PostmanClient
from ..collection import Collection
from ..exceptions import SyncError
from ..models import CollectionResponse, RemoteCollection
from ..output import OutputFormatter
from .state import SyncCache, WorkspaceRecord

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR = "instanceNotFoundError"

# First attempt plus one retry after invalidating a stale uid
MAX_ATTEMPTS = 2


class PushMode(Enum):
    """Whether a push updates an existing collection or creates one."""

    CREATE = "create"
    UPDATE = "update"


@dataclass
class CollectionTarget:
    """Outcome of resolving the remote collection to push to."""

    mode: PushMode
    uid: Optional[str] = None
    source: str = "lookup"
    """Where the uid came from: "override", "cache" or "lookup" """


class CollectionSync:
    """Publishes collections to Postman using a local identifier cache."""

    def __init__(
        self,
        client: PostmanClient,
        cache: SyncCache,
        output: Optional[OutputFormatter] = None,
        collection_uid: Optional[str] = None,
        workspace_name: Optional[str] = None,
    ):
        """Initialize the sync.

        Args:
            client: Postman API client
            cache: Identifier cache, loaded at the start of every sync
            output: Output formatter for displaying results
            collection_uid: Fixed remote collection to update, skipping lookups
            workspace_name: Workspace to publish into (None for the default)
        """
        self.client = client
        self.cache = cache
        self.output = output or OutputFormatter()
        self.collection_uid = collection_uid or None
        self.workspace_name = workspace_name or None

    def sync(self, collection: Collection) -> RemoteCollection:
        """Create or update the remote copy of a collection.

        Args:
            collection: Collection to publish

        Returns:
            Handle of the remote collection that now holds the document

        Raises:
            SyncError: If Postman rejected the collection
            PostmanAPIError: On authentication, network or server errors
        """
        name = collection.name
        document = collection.to_dict()

        self.cache.load()
        workspace = self.resolve_workspace()
        workspace_id = workspace.id if workspace else None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            target = self.resolve_collection(name, workspace_id)
            response = self.push(document, target, workspace_id)

            if response.ok:
                remote = response.collection or RemoteCollection(
                    uid=target.uid or "", name=name
                )
                self.cache.put_collection(name, remote.uid)
                self.cache.save()
                self._report_success(remote)
                return remote

            retry = (
                target.mode is PushMode.UPDATE
                and target.source != "override"
                and attempt < MAX_ATTEMPTS
            )
            if not retry:
                raise self._failure(name, target, response)

            # The uid points at a collection that no longer takes updates
            logger.info(
                f"Update of '{name}' ({target.uid}) failed, "
                "resolving the collection again"
            )
            self.cache.invalidate(name)
            self.cache.save()

        # Unreachable: the last attempt either returns or raises
        raise SyncError("Sync attempts exhausted", name)

    def resolve_workspace(self) -> Optional[WorkspaceRecord]:
        """Find the workspace to publish into.

        Returns:
            The workspace, or None to publish without a workspace scope
        """
        if not self.workspace_name:
            self.cache.invalidate_workspace()
            return None

        cached = self.cache.get_workspace()
        if cached is not None and cached.name == self.workspace_name:
            logger.debug(f"Using cached workspace {cached.name} ({cached.id})")
            return cached

        remote = self.client.find_workspace_by_name(self.workspace_name)
        if remote is None or not remote.id:
            logger.warning(
                f"Workspace '{self.workspace_name}' not found, "
                "using the default workspace"
            )
            self.cache.invalidate_workspace()
            return None

        record = WorkspaceRecord(id=remote.id, name=remote.name, type=remote.type)
        self.cache.put_workspace(record)
        return record

    def resolve_collection(
        self, name: str, workspace_id: Optional[str] = None
    ) -> CollectionTarget:
        """Find the remote collection a local collection maps to.

        Args:
            name: Local collection name
            workspace_id: Workspace to search in (None searches everywhere)

        Returns:
            Update target if a remote collection was found, create target otherwise
        """
        if self.collection_uid:
            return CollectionTarget(PushMode.UPDATE, self.collection_uid, "override")

        cached = self.cache.get_collection(name)
        if cached is not None:
            logger.debug(f"Using cached uid {cached.uid} for '{name}'")
            return CollectionTarget(PushMode.UPDATE, cached.uid, "cache")

        if workspace_id:
            remote = self.client.find_workspace_collection_by_name(workspace_id, name)
        else:
            remote = self.client.find_collection_by_name(name)

        if remote is not None and remote.uid:
            return CollectionTarget(PushMode.UPDATE, remote.uid, "lookup")
        return CollectionTarget(PushMode.CREATE)

    def push(
        self,
        document: dict[str, Any],
        target: CollectionTarget,
        workspace_id: Optional[str] = None,
    ) -> CollectionResponse:
        """Send the document to Postman."""
        if target.mode is PushMode.UPDATE and target.uid:
            logger.debug(f"Updating collection {target.uid}")
            return self.client.update_collection(document, target.uid, workspace_id)
        logger.debug("Creating collection")
        return self.client.create_collection(document, workspace_id)

    def _failure(
        self, name: str, target: CollectionTarget, response: CollectionResponse
    ) -> SyncError:
        error = response.error
        message = error.get("message")
        reason = message or f"Postman rejected the {target.mode.value} of '{name}'."
        solution = None

        if target.source == "override":
            not_found = f"Targeted Postman collection ID {target.uid} does not exist."
            if not message:
                reason = not_found
            elif error.get("name") == NOT_FOUND_ERROR:
                reason = f"{message} {not_found}"
            solution = "Review the collection ID defined for the 'postmanUid' setting."

        return SyncError(
            reason,
            collection_name=name,
            collection_uid=target.uid,
            solution=solution,
            error=error or None,
        )

    def _report_success(self, remote: RemoteCollection) -> None:
        self.output.key_value("   -> Postman Name", remote.name)
        self.output.key_value("   -> Postman UID", remote.uid)
