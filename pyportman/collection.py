"""In-memory model of a Postman v2.1 collection document.

A collection is a tree: the root ``Collection`` holds an ordered list of
nodes, each either an ``ItemGroup`` (a folder, with its own ordered children)
or an ``Item`` (a request). Every node keeps a back-reference to its owning
group so that items can be detached and moved around.

Keys the model does not interpret (``request``, ``event``, ``auth``, ...) are
kept verbatim in ``extra`` and written back unchanged.
"""

from __future__ import annotations

import copy
import json
import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import CollectionError
from .settings import Replacement, apply_replacements

logger = logging.getLogger(__name__)

SCHEMA_V21 = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Item:
    """A leaf request in the collection."""

    name: str
    id: str = field(default_factory=_new_id)
    extra: dict[str, Any] = field(default_factory=dict)
    tags: set[str] = field(default_factory=set, compare=False)
    """Test classifications assigned to this item, never serialized"""

    parent: Optional[ItemGroup] = field(default=None, repr=False, compare=False)

    @property
    def request(self) -> dict[str, Any]:
        request = self.extra.get("request")
        if isinstance(request, str):
            # Shorthand form: the request is just a URL
            return {"method": "GET", "url": request}
        return request if isinstance(request, dict) else {}

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, **self.extra}


@dataclass
class ItemGroup:
    """A folder holding items and nested folders."""

    name: str
    items: list[Node] = field(default_factory=list)
    id: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    parent: Optional[ItemGroup] = field(default=None, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.items)

    def add(self, node: Node) -> Node:
        """Append a node and take ownership of it."""
        node.parent = self
        self.items.append(node)
        return node

    def remove(self, node: Node) -> None:
        """Detach a node from this group.

        Nodes are matched by identity, not equality.

        Raises:
            ValueError: If the node is not a direct child of this group
        """
        for index, child in enumerate(self.items):
            if child is node:
                del self.items[index]
                node.parent = None
                return
        raise ValueError(f"'{node.name}' is not a child of '{self.name}'")

    def find_group(self, name: str) -> Optional[ItemGroup]:
        """Find a direct child folder by name."""
        for child in self.items:
            if isinstance(child, ItemGroup) and child.name == name:
                return child
        return None

    def iter_items(self) -> Iterator[Item]:
        """Yield all leaf items below this group in document order."""
        for child in self.items:
            if isinstance(child, ItemGroup):
                yield from child.iter_items()
            else:
                yield child

    def find_item(self, item_id: str) -> Optional[Item]:
        for item in self.iter_items():
            if item.id == item_id:
                return item
        return None

    def contains(self, node: Node) -> bool:
        """Check whether a node lives anywhere below this group."""
        owner = node.parent
        while owner is not None:
            if owner is self:
                return True
            owner = owner.parent
        return False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        data["name"] = self.name
        data["item"] = [child.to_dict() for child in self.items]
        data.update(self.extra)
        return data


Node = Union[Item, ItemGroup]


@dataclass
class Collection(ItemGroup):
    """Root of a collection document."""

    info: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Collection:
        """Build a collection from Postman v2.1 JSON.

        Leaves without an ``id`` get a generated one.

        Raises:
            CollectionError: If the document is malformed or leaf ids collide
        """
        if not isinstance(data, dict):
            raise CollectionError("Collection document must be a JSON object")

        # Accept the {"collection": {...}} envelope used by the Postman API
        if "info" not in data and isinstance(data.get("collection"), dict):
            data = data["collection"]

        info = data.get("info") or {}
        if not isinstance(info, dict):
            raise CollectionError("Collection 'info' must be an object")

        extra = {k: v for k, v in data.items() if k not in ("info", "item")}
        collection = cls(
            name=info.get("name") or "",
            info={k: v for k, v in info.items() if k != "name"},
            extra=extra,
        )
        seen: set[str] = set()
        for child in _read_children(data, "collection"):
            collection.add(_node_from_dict(child, seen))
        return collection

    def to_dict(self) -> dict[str, Any]:
        info = {"name": self.name, **self.info}
        info.setdefault("schema", SCHEMA_V21)
        data: dict[str, Any] = {"info": info}
        data["item"] = [child.to_dict() for child in self.items]
        data.update(self.extra)
        return data

    def copy(self) -> Collection:
        """Deep copy of the whole tree, tags and parent references included."""
        return copy.deepcopy(self)


def _read_children(data: dict[str, Any], owner: str) -> list[dict[str, Any]]:
    children = data.get("item") or []
    if not isinstance(children, list):
        raise CollectionError(f"'item' of '{owner}' must be a list")
    return children


def _node_from_dict(data: Any, seen: set[str]) -> Node:
    if not isinstance(data, dict):
        raise CollectionError(f"Collection entries must be objects, got {data!r}")

    name = data.get("name") or ""
    extra = {k: v for k, v in data.items() if k not in ("id", "name", "item")}

    if "item" in data:
        group = ItemGroup(name=name, id=data.get("id"), extra=extra)
        for child in _read_children(data, name):
            group.add(_node_from_dict(child, seen))
        return group

    item_id = data.get("id") or _new_id()
    if item_id in seen:
        raise CollectionError(f"Duplicate item id '{item_id}' ('{name}')")
    seen.add(item_id)
    return Item(name=name, id=item_id, extra=extra)


def load_collection(path: Union[str, Path]) -> Collection:
    """Load a collection document from a JSON file.

    Raises:
        CollectionError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise CollectionError(f"Loading {path} failed: {e}") from e

    collection = Collection.from_dict(data)
    logger.debug(
        f"Loaded collection '{collection.name}' with "
        f"{sum(1 for _ in collection.iter_items())} item(s) from {path}"
    )
    return collection


def _serialize(collection: Collection) -> str:
    return json.dumps(collection.to_dict(), indent=2, ensure_ascii=False)


def replace_in_collection(
    collection: Collection, replacements: Iterable[Replacement]
) -> Collection:
    """Apply raw text replacements to the serialized collection.

    Returns:
        The collection parsed back from the replaced text

    Raises:
        CollectionError: If the replaced text is no longer a valid collection
    """
    replacements = list(replacements)
    if not replacements:
        return collection

    text = apply_replacements(_serialize(collection), replacements)
    try:
        data = json.loads(text)
    except ValueError as e:
        raise CollectionError(f"Replacements produced invalid JSON: {e}") from e
    logger.debug(f"Applied {len(replacements)} replacement(s) to '{collection.name}'")
    return Collection.from_dict(data)


def write_collection(
    collection: Collection,
    path: Union[str, Path],
    replacements: Iterable[Replacement] = (),
) -> Path:
    """Write a collection document to a JSON file.

    Args:
        collection: Collection to write
        path: Destination, must be a .json file
        replacements: Raw text replacements applied to the written JSON

    Returns:
        Path that was written

    Raises:
        CollectionError: If the path is not a .json file or cannot be written
    """
    path = Path(path)
    if path.suffix.lower() != ".json":
        raise CollectionError(
            f"Output file error - Only .json filenames are allowed for '{path}'"
        )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(apply_replacements(_serialize(collection), replacements))
    except OSError as e:
        raise CollectionError(f"Output file error - cannot write '{path}': {e}") from e

    logger.debug(f"Wrote collection '{collection.name}' to {path}")
    return path
