"""Pydantic schemas for the TinyLink JSON API.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    ├─ targetUrl: str
    └─ code: str | None (optional, blank or non-string means generate)

    LinkSummary (Output)
    ├─ code: str
    ├─ targetUrl: str
    ├─ totalClicks: int
    ├─ lastClickedAt: datetime | None
    ├─ createdAt: datetime
    └─ shortUrl: str (computed, not stored)

Key Behaviours
===============
- Field names are snake_case in Python and camelCase on the wire.
- URL and code rules are enforced by the allocator, not here, so that a bad
  URL or code is reported as 400 with a specific message.
"""

import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from tinylink.models import Link

__all__ = ["LinkCreate", "LinkSummary"]


class LinkCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_url: str
    code: str | None = None

    @field_validator("code", mode="before")
    @classmethod
    def ignore_non_string_code(cls, value):
        # a non-string code means "generate one", not a bad request
        return value if isinstance(value, str) else None


class LinkSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    target_url: str
    total_clicks: int
    last_clicked_at: datetime.datetime | None
    created_at: datetime.datetime
    short_url: str

    @classmethod
    def from_link(cls, link: Link, base_url: str) -> "LinkSummary":
        return cls(
            code=link.code,
            target_url=link.target_url,
            total_clicks=link.total_clicks,
            last_clicked_at=link.last_clicked_at,
            created_at=link.created_at,
            short_url=f"{base_url}/{link.code}",
        )
