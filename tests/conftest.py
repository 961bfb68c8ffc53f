"""Shared fixtures for notecache tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from notecache._store_async import NoteStoreAsync
from notecache.client.memory import MemoryRemoteStoreClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


SAMPLE_FILES = {
    "README.md": "# Notes\n",
    "journal/2024-01-01.md": "New year, new notes.",
    "journal/2024-01-02.md": "Second day.",
    "projects/notecache/design.md": "Tree merge design.",
    "projects/notecache/todo.md": "- write tests",
}


@pytest.fixture
def memory_client() -> MemoryRemoteStoreClient:
    """In-memory remote store seeded with SAMPLE_FILES."""
    return MemoryRemoteStoreClient(SAMPLE_FILES, page_size=2)


@pytest.fixture
async def store(memory_client: MemoryRemoteStoreClient) -> AsyncIterator[NoteStoreAsync]:
    """NoteStoreAsync over the seeded in-memory client, closed after each test."""
    async with NoteStoreAsync(memory_client) as s:
        yield s
