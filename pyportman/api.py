"""API client for the Postman cloud."""

from __future__ import annotations

import logging
import random
import time
from typing import Any

import httpx

from .config import config
from .exceptions import (
    PostmanAPIError,
    PostmanAuthenticationError,
    PortmanConfigError,
    PostmanInvalidResponseError,
    PostmanNetworkError,
    PostmanNotFoundError,
    PostmanPermissionError,
    PostmanRateLimitError,
)
from .models import CollectionResponse, RemoteCollection, RemoteWorkspace
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

logger = logging.getLogger(__name__)


class PostmanClient:
    """Client for interacting with the Postman API."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
    ):
        """Initialize Postman API client.

        Args:
            api_key: Optional API key (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds
            timeout: Request timeout in seconds (default: 30.0)
        """
        self.api_key = api_key or config.api_key
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        if not self.api_key:
            raise PortmanConfigError(
                "API key not configured. "
                "Please set POSTMAN_API_KEY environment variable."
            )

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={
                    "X-Api-Key": self.api_key or "",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> PostmanClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures
        if isinstance(exception, (PostmanNetworkError, PostmanRateLimitError)):
            return True

        if isinstance(exception, PostmanAPIError) and exception.status_code:
            return 500 <= exception.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _response_body(response: httpx.Response) -> Any:
        """Parse a response body as JSON, returning None if it is not JSON."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> PostmanAPIError:
        """Map an HTTP error to the matching pyportman exception.

        Args:
            e: The HTTP error exception

        Returns:
            Exception to raise, carrying the status code and response body
        """
        status_code = e.response.status_code
        body = self._response_body(e.response)

        if status_code == 401:
            return PostmanAuthenticationError(
                "Invalid API key or unauthorized access", status_code, body
            )
        if status_code == 403:
            return PostmanPermissionError(
                "Access forbidden - check your permissions", status_code, body
            )
        if status_code == 404:
            return PostmanNotFoundError("Resource not found", status_code, body)
        if status_code == 429:
            return PostmanRateLimitError(
                "Rate limit exceeded - please try again later", status_code, body
            )

        error_msg = f"API request failed with status {status_code}"
        if isinstance(body, dict):
            error = body.get("error")
            msg = (
                error.get("message") if isinstance(error, dict) else error
            ) or body.get("message")
            if msg:
                error_msg = f"{error_msg}: {msg}"
        return PostmanAPIError(error_msg, status_code, body)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            PostmanAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(f"{method} {url} (attempt {attempt + 1})")
                response = client.request(method, url, **kwargs)
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    raise PostmanInvalidResponseError(
                        f"Unexpected response type: {content_type}",
                        response.status_code,
                    )

                if response.content:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise PostmanInvalidResponseError(
                            "Invalid JSON response from server",
                            response.status_code,
                        ) from e
                return {}

            except httpx.HTTPStatusError as e:
                error = self._handle_http_error(e)
                last_exception = error

                if self._should_retry(error, attempt):
                    retry_after = e.response.headers.get("Retry-After")
                    if (
                        isinstance(error, PostmanRateLimitError)
                        and retry_after
                        and retry_after.isdigit()
                    ):
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.debug(f"Retrying {method} {url} in {delay:.1f}s: {error}")
                    time.sleep(delay)
                    continue
                raise error from e
            except PostmanAPIError:
                raise
            except httpx.RequestError as e:
                error = PostmanNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise PostmanAPIError("Request failed after all retry attempts")

    # =========================
    # User Operations
    # =========================

    def get_me(self) -> Any:
        """Get information about the owner of the API key.

        Returns:
            Response with 'user' key
        """
        return self._request("GET", "/me")

    # =========================
    # Workspace Operations
    # =========================

    def get_workspaces(self) -> Any:
        """Get list of workspaces the user has access to.

        Returns:
            Response with 'workspaces' key containing list of workspace objects
        """
        return self._request("GET", "/workspaces")

    def get_workspace(self, workspace_id: str) -> Any:
        """Get a single workspace including its collections.

        Returns:
            Response with 'workspace' key
        """
        return self._request("GET", f"/workspaces/{workspace_id}")

    def find_workspace_by_name(self, name: str) -> RemoteWorkspace | None:
        """Find a workspace by name.

        An exact match wins; otherwise names are compared case-insensitively.

        Args:
            name: Workspace name

        Returns:
            The workspace, or None if no workspace carries that name
        """
        result = self.get_workspaces()
        workspaces = result.get("workspaces", []) if isinstance(result, dict) else []

        match = _match_by_name(workspaces, name)
        if match is None:
            logger.debug(f"Workspace '{name}' not found")
            return None
        return RemoteWorkspace.from_api_response(match)

    # =========================
    # Collection Operations
    # =========================

    def get_collections(self, workspace_id: str | None = None) -> Any:
        """Get all collections, optionally limited to one workspace.

        Returns:
            Response with 'collections' key
        """
        params = {"workspace": workspace_id} if workspace_id else None
        return self._request("GET", "/collections", params=params)

    def find_collection_by_name(self, name: str) -> RemoteCollection | None:
        """Find a collection by name across all accessible collections.

        Args:
            name: Collection name

        Returns:
            The collection handle, or None if not found
        """
        result = self.get_collections()
        collections = (
            result.get("collections", []) if isinstance(result, dict) else []
        )
        return _pick_collection(collections, name)

    def find_workspace_collection_by_name(
        self, workspace_id: str, name: str
    ) -> RemoteCollection | None:
        """Find a collection by name inside a workspace.

        Args:
            workspace_id: Workspace ID
            name: Collection name

        Returns:
            The collection handle, or None if not found
        """
        result = self.get_workspace(workspace_id)
        workspace = result.get("workspace", {}) if isinstance(result, dict) else {}
        collections = workspace.get("collections") or []
        return _pick_collection(collections, name)

    def create_collection(
        self, collection: dict[str, Any], workspace_id: str | None = None
    ) -> CollectionResponse:
        """Create a collection.

        Args:
            collection: Postman v2.1 collection document
            workspace_id: Workspace to create the collection in (None for default)

        Returns:
            Structured response; rejected requests come back with status "fail"

        Raises:
            PostmanAPIError: On authentication, network or server errors
        """
        params = {"workspace": workspace_id} if workspace_id else None
        return self._mutate(
            "POST", "/collections", {"collection": collection}, params
        )

    def update_collection(
        self,
        collection: dict[str, Any],
        uid: str,
        workspace_id: str | None = None,
    ) -> CollectionResponse:
        """Replace the contents of an existing collection.

        Args:
            collection: Postman v2.1 collection document
            uid: Remote collection uid
            workspace_id: Workspace scope (None for default)

        Returns:
            Structured response; rejected requests come back with status "fail"

        Raises:
            PostmanAPIError: On authentication, network or server errors
        """
        params = {"workspace": workspace_id} if workspace_id else None
        return self._mutate(
            "PUT", f"/collections/{uid}", {"collection": collection}, params
        )

    def _mutate(
        self,
        method: str,
        endpoint: str,
        payload: dict[str, Any],
        params: dict[str, str] | None,
    ) -> CollectionResponse:
        try:
            result = self._request(method, endpoint, json=payload, params=params)
        except PostmanAPIError as e:
            if not _is_rejection(e):
                raise
            logger.debug(f"{method} {endpoint} rejected: {e}")
            return CollectionResponse.fail(
                e.response_data
                or {"error": {"name": type(e).__name__, "message": str(e)}}
            )
        return CollectionResponse.success(result)


def _is_rejection(error: PostmanAPIError) -> bool:
    """Whether the API refused a request, as opposed to not answering it."""
    if isinstance(error, (PostmanAuthenticationError, PostmanRateLimitError)):
        return False
    status_code = error.status_code
    return status_code is not None and 400 <= status_code < 500


def _match_by_name(entries: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    matches = [e for e in entries if e.get("name") == name]
    if not matches:
        name_lower = name.lower()
        matches = [e for e in entries if (e.get("name") or "").lower() == name_lower]
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            f"Found {len(matches)} entries named '{name}', using the first one"
        )
    return matches[0]


def _pick_collection(
    collections: list[dict[str, Any]], name: str
) -> RemoteCollection | None:
    # Collection names are matched exactly, unlike workspaces
    matches = [c for c in collections if c.get("name") == name]
    if not matches:
        logger.debug(f"Collection '{name}' not found")
        return None
    if len(matches) > 1:
        logger.warning(
            f"Found {len(matches)} collections named '{name}', "
            f"using {matches[0].get('uid')}"
        )
    return RemoteCollection.from_api_response(matches[0])
