"""Test classification of collection items.

Decides which requests carry contract tests. Settings use the same selector
format as OpenAPI based tooling: ``METHOD::/path`` where ``*`` is a wildcard
and path parameters are written ``{name}``, e.g.::

    {
      "contractTests": [
        {
          "openApiOperation": "*::/crm/*",
          "excludeForOperations": ["DELETE::/crm/leads/{id}"]
        }
      ]
    }
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import urlsplit

from .collection import Collection, Item
from .exceptions import PortmanConfigError
from .settings import read_settings
from .utils import glob_match

logger = logging.getLogger(__name__)

CONTRACT = "contract"

_PATH_VARIABLE = re.compile(r"^:(\w+)$")


@dataclass
class TestSetting:
    """Operation selection for one block of generated tests."""

    __test__ = False  # not a pytest class

    operations: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TestSetting":
        operations = data.get("openApiOperations") or []
        if data.get("openApiOperation"):
            operations = [data["openApiOperation"], *operations]
        return cls(
            operations=list(operations),
            exclude=list(data.get("excludeForOperations") or []),
        )

    def selects(self, operation: str) -> bool:
        if any(glob_match(p, operation) for p in self.exclude):
            return False
        return any(glob_match(p, operation) for p in self.operations)


def load_contract_settings(path: Union[str, Path]) -> list[TestSetting]:
    """Read the ``contractTests`` block of a settings file.

    Raises:
        PortmanConfigError: If the file is missing or not a valid settings file
    """
    blocks = read_settings(path).get("contractTests")
    if blocks is None:
        logger.warning(f"No contractTests defined in {path}")
        return []
    if not isinstance(blocks, list):
        raise PortmanConfigError(f"'contractTests' in '{path}' must be a list")
    return [TestSetting.from_dict(b) for b in blocks if isinstance(b, dict)]


def _url_path(url: Any) -> str:
    if isinstance(url, dict):
        segments = url.get("path")
        if isinstance(segments, str):
            return segments
        if isinstance(segments, list):
            return "/".join(
                s.get("value", "") if isinstance(s, dict) else str(s)
                for s in segments
            )
        url = url.get("raw", "")
    if not isinstance(url, str):
        return ""

    # Raw form, e.g. "{{baseUrl}}/crm/leads?limit=20"
    raw = url.split("?", 1)[0]
    if raw.startswith("{{"):
        _, _, raw = raw.partition("}}")
    elif "://" in raw:
        raw = urlsplit(raw).path
    return raw


def operation_of(item: Item) -> Optional[str]:
    """Describe a request as ``METHOD::/path``.

    Postman path variables (``:id``) are rewritten as ``{id}``.

    Returns:
        The operation, or None for items without a request
    """
    request = item.request
    if not request:
        return None

    method = str(request.get("method") or "GET").upper()
    segments = [s for s in _url_path(request.get("url")).split("/") if s]
    segments = [_PATH_VARIABLE.sub(r"{\1}", s) for s in segments]
    return f"{method}::/" + "/".join(segments)


def tag_items(
    collection: Collection, settings: Iterable[TestSetting], tag: str
) -> list[str]:
    """Tag every request selected by any of the settings.

    Returns:
        Ids of the tagged items, in document order
    """
    settings = list(settings)
    tagged = []
    for item in collection.iter_items():
        operation = operation_of(item)
        if operation is None:
            continue
        if any(setting.selects(operation) for setting in settings):
            item.tags.add(tag)
            tagged.append(item.id)
    logger.debug(f"Tagged {len(tagged)} item(s) as '{tag}'")
    return tagged


def tag_contract_tests(
    collection: Collection, settings: Iterable[TestSetting]
) -> list[str]:
    return tag_items(collection, settings, CONTRACT)


def has_classification(tag: str) -> Callable[[Item], bool]:
    """Predicate selecting items carrying the given classification."""

    def predicate(item: Item) -> bool:
        return tag in item.tags

    return predicate
