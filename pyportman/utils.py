"""Utility functions for pyportman."""

import re

# =============================================================================
# Constants
# =============================================================================

# Retry configuration for transient API errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 2.0  # seconds

# Name of the folder contract-tested operations are moved into
DEFAULT_CONTRACT_FOLDER: str = "Contract Tests"

# Where collections are written when no output path is given
DEFAULT_OUTPUT_DIR: str = "./tmp/converted"
DEFAULT_COLLECTION_NAME: str = "portman-collection"


# =============================================================================
# Pattern matching utilities
# =============================================================================


def glob_to_regex(pattern: str) -> str:
    """Convert a wildcard pattern to an anchored regular expression.

    Only ``*`` is special and matches any run of characters, including
    ``/``. Everything else is matched literally.

    Args:
        pattern: Wildcard pattern (e.g., "GET::/crm/*")

    Returns:
        Regular expression string

    Examples:
        >>> glob_to_regex("*::/users")
        '^.*::/users$'
    """
    parts = [re.escape(part) for part in pattern.split("*")]
    return "^" + ".*".join(parts) + "$"


def glob_match(pattern: str, value: str, case_sensitive: bool = True) -> bool:
    """Check whether a value matches a wildcard pattern.

    Examples:
        >>> glob_match("*::/crm/*", "GET::/crm/leads")
        True
        >>> glob_match("POST::/crm/*", "GET::/crm/leads")
        False
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.match(glob_to_regex(pattern), value, flags) is not None


# =============================================================================
# Naming utilities
# =============================================================================


def camel_case(value: str) -> str:
    """Convert a display name to camelCase.

    Examples:
        >>> camel_case("Orders API")
        'ordersApi'
        >>> camel_case("crm-service v2")
        'crmServiceV2'
    """
    words = re.findall(r"[A-Za-z0-9]+", value)
    if not words:
        return ""
    first, rest = words[0].lower(), words[1:]
    return first + "".join(w[:1].upper() + w[1:].lower() for w in rest)


def default_output_path(collection_name: str) -> str:
    """Default location for a written collection.

    Examples:
        >>> default_output_path("Orders API")
        './tmp/converted/ordersApi.json'
    """
    file_name = camel_case(collection_name) or DEFAULT_COLLECTION_NAME
    return f"{DEFAULT_OUTPUT_DIR}/{file_name}.json"
