"""PyPortman - bundle and publish Postman collections."""

from .api import PostmanClient
from .collection import Collection, Item, ItemGroup, load_collection, write_collection
from .exceptions import (
    CollectionError,
    PortmanConfigError,
    PortmanError,
    PostmanAPIError,
    PostmanAuthenticationError,
    PostmanInvalidResponseError,
    PostmanNetworkError,
    PostmanNotFoundError,
    PostmanPermissionError,
    PostmanRateLimitError,
    SyncError,
)
from .restructure import bundle_contract_tests, regroup

__all__ = [
    "PostmanClient",
    "Collection",
    "Item",
    "ItemGroup",
    "load_collection",
    "write_collection",
    "regroup",
    "bundle_contract_tests",
    "CollectionError",
    "PortmanConfigError",
    "PortmanError",
    "PostmanAPIError",
    "PostmanAuthenticationError",
    "PostmanInvalidResponseError",
    "PostmanNetworkError",
    "PostmanNotFoundError",
    "PostmanPermissionError",
    "PostmanRateLimitError",
    "SyncError",
]
