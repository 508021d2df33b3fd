"""SQLAlchemy ORM models for TinyLink.

Data Model Layout
=================
::
    links table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ code (VARCHAR(8) UNIQUE, INDEXED)
    ├─ target_url (TEXT NOT NULL)
    ├─ total_clicks (INTEGER DEFAULT 0)
    ├─ last_clicked_at (TIMESTAMPTZ NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

Key Behaviours
===============
- The unique index on ``code`` is the authority for code uniqueness.
- ``total_clicks`` is only changed by an in-database increment.
- ``created_at`` is set by the database and never updated.

Classes:
    Link:  A short code mapped to a target URL with click tracking.
"""

import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tinylink.database import Base

__all__ = ["Link"]


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(8), unique=True, index=True, nullable=False)
    target_url: Mapped[str] = mapped_column(Text, nullable=False)
    total_clicks: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    last_clicked_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, code='{self.code}', total_clicks={self.total_clicks})>"
