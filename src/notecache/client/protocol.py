"""RemoteStoreClient protocol — the collaborator the note store talks to.

Every method is a coroutine.  Implementations signal any rejection
(transport failure, error status, malformed payload, revision mismatch)
by raising :class:`~notecache.exceptions.NetworkFailure`; the note store
never looks inside the error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from notecache.models import Page, Record


@runtime_checkable
class RemoteStoreClient(Protocol):
    """Fetches, saves and deletes note records by path."""

    async def search(
        self,
        page: int | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> Page:
        """Return one page of matching records, ranked by the remote store."""
        ...

    async def list_tree(self) -> list[Record]:
        """Return every file and directory in the repository."""
        ...

    async def list_directory(self, path: str) -> list[Record]:
        """Return the immediate entries of the directory at *path*."""
        ...

    async def get_file(self, path: str) -> Record:
        """Return the file at *path*, including its content."""
        ...

    async def save_file(self, path: str, content: str, sha: str | None = None) -> Record:
        """Create or overwrite *path*.  *sha* is the revision being replaced."""
        ...

    async def delete_file(self, path: str, sha: str | None = None) -> None:
        """Delete *path*.  *sha* is the revision being deleted."""
        ...

    async def close(self) -> None:
        """Release client resources."""
        ...
