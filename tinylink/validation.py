"""Pure predicates for target URLs and short codes."""

import re
import string
from urllib.parse import urlsplit

__all__ = [
    "CODE_ALPHABET",
    "CODE_MAX_LENGTH",
    "CODE_MIN_LENGTH",
    "is_valid_code_format",
    "is_valid_target_url",
]

CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
CODE_MIN_LENGTH = 6
CODE_MAX_LENGTH = 8

ALLOWED_SCHEMES = frozenset({"http", "https"})

# host characters a URL parser refuses outright; everything else is encoded
_FORBIDDEN_HOST_CHARS = frozenset(" \t\n\r#%/<>?@\\^|")

_CODE_PATTERN = re.compile(rf"[A-Za-z0-9]{{{CODE_MIN_LENGTH},{CODE_MAX_LENGTH}}}")


def is_valid_target_url(value: str) -> bool:
    """Return True when ``value`` parses as an absolute http(s) URL with a host.

    Paths, queries and credentials are not checked beyond parsing, so
    ``https://example.com/a b`` and ``http://my_host.example.com/`` pass.
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        parts = urlsplit(value)
        # raises ValueError on a non-numeric or out-of-range port
        parts.port
    except ValueError:
        return False
    if parts.scheme not in ALLOWED_SCHEMES:
        return False
    host = parts.hostname
    if not host:
        return False
    return not any(char in _FORBIDDEN_HOST_CHARS for char in host)


def is_valid_code_format(value: str) -> bool:
    """Return True when ``value`` is 6-8 ASCII letters or digits, untrimmed."""
    return isinstance(value, str) and _CODE_PATTERN.fullmatch(value) is not None
