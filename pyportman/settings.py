"""Portman settings file.

The settings file is a JSON document shared with the Portman tooling. Only
two blocks are read here: ``contractTests`` (see ``classification``) and the
raw text replacements applied to a collection before it is written::

    {
      "globals": {
        "portmanReplacements": [
          {"searchFor": "Bearer token", "replaceWith": "{{bearerToken}}"}
        ]
      }
    }
"""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from .exceptions import PortmanConfigError

logger = logging.getLogger(__name__)


@dataclass
class Replacement:
    """Literal find/replace applied to the serialized collection."""

    search_for: str
    replace_with: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Replacement":
        return cls(
            search_for=str(data["searchFor"]),
            replace_with=str(data.get("replaceWith") or ""),
        )


def read_settings(path: Union[str, Path]) -> dict[str, Any]:
    """Read a settings file.

    Raises:
        PortmanConfigError: If the file is missing, not UTF-8 or not a JSON object
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PortmanConfigError(f"Invalid Portman config '{path}': {e}") from e

    if not isinstance(data, dict):
        raise PortmanConfigError(f"Portman config '{path}' must be a JSON object")
    return data


def load_replacements(path: Union[str, Path]) -> list[Replacement]:
    """Read ``globals.portmanReplacements`` from a settings file."""
    settings = read_settings(path)
    globals_ = settings.get("globals")
    if not isinstance(globals_, dict):
        return []
    entries = globals_.get("portmanReplacements")
    if not entries:
        return []
    if not isinstance(entries, list):
        raise PortmanConfigError(
            f"'globals.portmanReplacements' in '{path}' must be a list"
        )

    replacements = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("searchFor"):
            logger.warning(f"Skipping replacement without searchFor: {entry!r}")
            continue
        replacements.append(Replacement.from_dict(entry))
    return replacements


def apply_replacements(text: str, replacements: Iterable[Replacement]) -> str:
    """Replace every occurrence of each search string, in order."""
    for replacement in replacements:
        text = text.replace(replacement.search_for, replacement.replace_with)
    return text
