"""Data models for Postman API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional

STATUS_SUCCESS = "success"
STATUS_FAIL = "fail"


@dataclass
class RemoteWorkspace:
    """A workspace as reported by the Postman API."""

    id: str
    name: str
    type: str = "personal"

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteWorkspace":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            type=data.get("type", "personal"),
        )

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "type": self.type}


@dataclass
class RemoteCollection:
    """A collection handle as reported by the Postman API.

    The uid (``<owner>-<id>``) is what the collection endpoints expect.
    """

    uid: str
    name: str
    id: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteCollection":
        return cls(
            uid=data.get("uid", ""),
            name=data.get("name", ""),
            id=data.get("id"),
        )


@dataclass
class CollectionResponse:
    """Outcome of a create or update call.

    ``status`` is exactly ``"success"`` or ``"fail"``. On success ``data``
    holds the API body (``{"collection": {"id", "name", "uid"}}``), on failure
    the error body (``{"error": {"name", "message"}}``).
    """

    status: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, data: Optional[dict[str, Any]]) -> "CollectionResponse":
        return cls(STATUS_SUCCESS, data if isinstance(data, dict) else {})

    @classmethod
    def fail(cls, data: Optional[Any]) -> "CollectionResponse":
        if not isinstance(data, dict):
            data = {"error": {"name": "unknownError", "message": str(data or "")}}
        return cls(STATUS_FAIL, data)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def collection(self) -> Optional[RemoteCollection]:
        coll = self.data.get("collection")
        if self.ok and isinstance(coll, dict):
            return RemoteCollection.from_api_response(coll)
        return None

    @property
    def error(self) -> dict[str, Any]:
        error = self.data.get("error")
        return error if isinstance(error, dict) else {}
