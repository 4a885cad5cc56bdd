"""Exceptions raised by pyportman."""

from typing import Any, Optional


class PortmanError(Exception):
    """Base exception for all pyportman errors."""


class PortmanConfigError(PortmanError):
    """Raised when configuration is missing or invalid."""


class CollectionError(PortmanConfigError):
    """Raised when a collection document cannot be loaded or written."""


class PostmanAPIError(PortmanError):
    """Raised when a Postman API request fails.

    Attributes:
        status_code: HTTP status of the failed response, if there was one
        response_data: Parsed JSON body returned by the API, if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class PostmanAuthenticationError(PostmanAPIError):
    """Raised when the API key is missing, invalid or expired."""


class PostmanPermissionError(PostmanAPIError):
    """Raised when the API key lacks access to a resource."""


class PostmanNotFoundError(PostmanAPIError):
    """Raised when a remote resource does not exist."""


class PostmanRateLimitError(PostmanAPIError):
    """Raised when the API rate limit has been exceeded."""


class PostmanNetworkError(PostmanAPIError):
    """Raised on connection problems and timeouts."""


class PostmanInvalidResponseError(PostmanAPIError):
    """Raised when the API answers with something other than JSON."""


class SyncError(PortmanError):
    """Raised when a collection could not be published to Postman.

    Attributes:
        reason: Human readable failure reason
        solution: Suggested remediation, if one can be derived
        collection_name: Local collection name
        collection_uid: Remote uid that was targeted, if any
        error: Error record returned by the API, if any
    """

    def __init__(
        self,
        reason: str,
        collection_name: str,
        collection_uid: Optional[str] = None,
        solution: Optional[str] = None,
        error: Optional[dict[str, Any]] = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.solution = solution
        self.collection_name = collection_name
        self.collection_uid = collection_uid
        self.error = error
