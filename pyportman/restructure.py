"""Regrouping of collection items into a dedicated folder.

Used to bundle every contract-tested request under one top-level folder
while keeping the folder each request came from::

    Orders API                      Orders API
    ├── Users                       ├── Users
    │   ├── List users  (c)         │   └── Create user
    │   └── Create user             └── Contract Tests
    ├── Health                          ├── Users
    │   └── Ping        (c)   ==>       │   └── List users
    └── Version         (c)             ├── Health
                                        │   └── Ping
                                        └── Version

Folders emptied by the move are pruned, one level only: a parent folder
left empty by that pruning stays in place.
"""

import logging
from typing import Callable

from .classification import CONTRACT, has_classification
from .collection import Collection, Item, ItemGroup
from .utils import DEFAULT_CONTRACT_FOLDER

logger = logging.getLogger(__name__)


def regroup(
    collection: Collection,
    predicate: Callable[[Item], bool],
    group_name: str,
) -> Collection:
    """Move every item matching ``predicate`` into a top-level folder.

    Args:
        collection: Source collection, left unmodified
        predicate: Selects the items to move
        group_name: Name of the folder collecting the moved items

    Returns:
        A new collection with the matching items regrouped. The folder is
        attached even when nothing matched.
    """
    tree = collection.copy()

    target = tree.find_group(group_name)
    reused = target is not None
    if target is None:
        target = ItemGroup(name=group_name)

    # Unique ids in discovery order; anything already bundled stays put
    selected: list[str] = []
    seen: set[str] = set()
    for item in tree.iter_items():
        if item.id in seen or (reused and target.contains(item)):
            continue
        if predicate(item):
            seen.add(item.id)
            selected.append(item.id)

    for item_id in selected:
        item = tree.find_item(item_id)
        if item is None or item.parent is None:
            continue

        owner = item.parent
        owner.remove(item)

        # If we just removed the last item, remove the folder
        if len(owner) == 0 and owner is not tree and owner.parent is not None:
            owner.parent.remove(owner)

        if owner is tree:
            destination = target
        else:
            # Recreate the original folder once, then keep filling it
            mirror = target.find_group(owner.name)
            if mirror is None:
                mirror = ItemGroup(name=owner.name)
                target.add(mirror)
            destination = mirror
        destination.add(item)

    if not reused:
        tree.add(target)

    logger.debug(f"Moved {len(selected)} item(s) into '{group_name}'")
    return tree


def bundle_contract_tests(
    collection: Collection, folder_name: str = DEFAULT_CONTRACT_FOLDER
) -> Collection:
    """Regroup the requests tagged as contract-tested."""
    return regroup(collection, has_classification(CONTRACT), folder_name)
