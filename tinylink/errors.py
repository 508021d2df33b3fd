"""Exception taxonomy for link allocation, lookup and storage.

Client errors (``InvalidFormat``, ``CodeTaken``, ``LinkNotFound``) are raised
before or instead of any state change. ``AllocationExhausted`` and
``StorageError`` are server-side failures; the HTTP layer reports them as 500
without leaking internal detail.
"""

__all__ = [
    "AllocationExhausted",
    "CodeConflict",
    "CodeTaken",
    "InvalidCode",
    "InvalidFormat",
    "InvalidTargetUrl",
    "LinkError",
    "LinkNotFound",
    "ReservedPath",
    "StorageError",
]


class LinkError(Exception):
    """Base class for every error raised by the link core."""


class InvalidFormat(LinkError):
    """A target URL or short code failed validation."""


class InvalidTargetUrl(InvalidFormat):
    def __init__(self, target_url: str) -> None:
        super().__init__("Please provide a valid http/https URL.")
        self.target_url = target_url


class InvalidCode(InvalidFormat):
    def __init__(self, code: str) -> None:
        super().__init__(
            "Custom code must be 6-8 characters long and only contain letters and numbers."
        )
        self.code = code


class CodeConflict(LinkError):
    """Raised by a store when an insert hits the unique index on ``code``."""

    def __init__(self, code: str) -> None:
        super().__init__(f"Code '{code}' already exists")
        self.code = code


class CodeTaken(LinkError):
    """A caller-chosen code is already owned by another link."""

    def __init__(self, code: str) -> None:
        super().__init__("That short code is already taken. Try another one.")
        self.code = code


class AllocationExhausted(LinkError):
    """Random code generation ran out of attempts."""

    def __init__(self, attempts: int) -> None:
        super().__init__("Failed to generate a unique short code. Please try again.")
        self.attempts = attempts


class LinkNotFound(LinkError):
    def __init__(self, code: str) -> None:
        super().__init__("Short link not found.")
        self.code = code


class ReservedPath(LinkNotFound):
    """The path belongs to the web layer (asset probes), not to a link."""


class StorageError(LinkError):
    """Opaque wrapper around a persistence failure."""
