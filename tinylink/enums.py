"""Shared enums for the TinyLink service.

This module defines the label values used by metrics and logging.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["AllocationMode", "AllocationFailure", "CacheStatus", "CollisionStage", "RedirectOutcome"]


class AllocationMode(StrEnum):
    """How the code of a new link was chosen."""

    EXPLICIT = "explicit"
    GENERATED = "generated"


class AllocationFailure(StrEnum):
    """Reasons a create-link request did not produce a link."""

    INVALID_FORMAT = "invalid_format"
    CODE_TAKEN = "code_taken"
    EXHAUSTED = "exhausted"


class CollisionStage(StrEnum):
    """Where a generated candidate was found to be taken."""

    PRECHECK = "precheck"
    INSERT = "insert"


class RedirectOutcome(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    RESERVED = "reserved"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "hit"
    MISS = "miss"
