"""SQLModel wire models for notecache."""

from notecache.models.notes import DEFAULT_PAGE_TOTAL, Page, Record, empty_page

__all__ = [
    "DEFAULT_PAGE_TOTAL",
    "Page",
    "Record",
    "empty_page",
]
