"""Record and Page models — the wire shapes exchanged with the remote store.

Both are non-table ``SQLModel`` classes: they validate remote payloads
but are never persisted.
"""

from __future__ import annotations

from sqlmodel import Field, SQLModel

DEFAULT_PAGE_TOTAL: int = 1
"""``total`` reported by the empty page before any search has completed."""


class Record(SQLModel):
    """One listed or fetched file/directory entry."""

    path: str
    sha: str | None = Field(default=None)
    content: str = Field(default="")
    size: int = Field(default=0)
    is_dir: bool = Field(default=False)


class Page(SQLModel):
    """A page of search results.

    ``total`` is the remote-reported count and is independent of how
    many records ``notes`` holds.
    """

    total: int = Field(default=DEFAULT_PAGE_TOTAL)
    notes: list[Record] = Field(default_factory=list)


def empty_page() -> Page:
    return Page(total=DEFAULT_PAGE_TOTAL, notes=[])
