"""MemoryRemoteStoreClient — a dict-backed remote store for tests and local use."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

from notecache.exceptions import NetworkFailure
from notecache.models import Page, Record
from notecache.tree.utils import ancestor_paths, normalize_path, validate_path

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def blob_sha(content: str) -> str:
    """Git blob SHA-1 of *content*, the revision tag this store hands out."""
    data = content.encode()
    return hashlib.sha1(b"blob %d\x00" % len(data) + data).hexdigest()


class MemoryRemoteStoreClient:
    """In-process implementation of the RemoteStoreClient protocol.

    Files live in a dict keyed by normalized path; directories exist
    implicitly as ancestors of files.  Saves and deletes enforce the
    revision token the way a real store does: replacing an existing file
    requires its current sha.

    ``calls`` records every ``(method, path)`` issued, which lets callers
    check that cached reads never reached the store.
    """

    def __init__(
        self,
        files: Mapping[str, str] | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self.page_size = page_size
        self._files: dict[str, str] = {}
        self.calls: list[tuple[str, str | None]] = []
        for path, content in (files or {}).items():
            self._files[self._checked(path)] = content

    # ------------------------------------------------------------------
    # RemoteStoreClient
    # ------------------------------------------------------------------

    async def search(
        self,
        page: int | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> Page:
        self.calls.append(("search", path))
        prefix = normalize_path(path or "")
        needle = (query or "").lower()

        matches = [
            self._file_record(p)
            for p in sorted(self._files)
            if _under(p, prefix)
            and (not needle or needle in p.lower() or needle in self._files[p].lower())
        ]
        number = max(page or 1, 1)
        start = (number - 1) * self.page_size
        return Page(total=len(matches), notes=matches[start : start + self.page_size])

    async def list_tree(self) -> list[Record]:
        self.calls.append(("list_tree", None))
        dirs = sorted({d for p in self._files for d in ancestor_paths(p)})
        return [self._dir_record(d) for d in dirs] + [
            self._file_record(p) for p in sorted(self._files)
        ]

    async def list_directory(self, path: str) -> list[Record]:
        path = self._checked(path)
        self.calls.append(("list_directory", path))
        if path and path not in self._dirs():
            raise NetworkFailure(f"Directory not found: {path}")

        entries: dict[str, Record] = {}
        for file_path in sorted(self._files):
            if not _under(file_path, path) or file_path == path:
                continue
            remainder = file_path[len(path) + 1 :] if path else file_path
            head = remainder.split("/", 1)[0]
            child = f"{path}/{head}" if path else head
            if child == file_path:
                entries[child] = self._file_record(child)
            else:
                entries.setdefault(child, self._dir_record(child))
        return [entries[k] for k in sorted(entries)]

    async def get_file(self, path: str) -> Record:
        path = self._checked(path)
        self.calls.append(("get_file", path))
        if path not in self._files:
            raise NetworkFailure(f"File not found: {path}")
        return self._file_record(path)

    async def save_file(self, path: str, content: str, sha: str | None = None) -> Record:
        path = self._checked(path)
        self.calls.append(("save_file", path))
        if not path or path in self._dirs():
            raise NetworkFailure(f"Cannot save over a directory: {path!r}")
        if any(d in self._files for d in ancestor_paths(path)):
            raise NetworkFailure(f"A parent of {path} is a file")

        current = self._files.get(path)
        if current is not None and sha != blob_sha(current):
            raise NetworkFailure(f"Revision mismatch for {path}")
        if current is None and sha is not None:
            raise NetworkFailure(f"File not found: {path}")

        self._files[path] = content
        logger.debug("Saved %s (%d chars)", path, len(content))
        # The save response carries metadata only; callers attach content.
        return self._file_record(path).model_copy(update={"content": ""})

    async def delete_file(self, path: str, sha: str | None = None) -> None:
        path = self._checked(path)
        self.calls.append(("delete_file", path))
        current = self._files.get(path)
        if current is None:
            raise NetworkFailure(f"File not found: {path}")
        if sha is not None and sha != blob_sha(current):
            raise NetworkFailure(f"Revision mismatch for {path}")
        del self._files[path]
        logger.debug("Deleted %s", path)

    async def close(self) -> None:
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def files(self) -> dict[str, str]:
        """Copy of the stored file bodies keyed by path."""
        return dict(self._files)

    def _dirs(self) -> set[str]:
        return {d for p in self._files for d in ancestor_paths(p)}

    def _file_record(self, path: str) -> Record:
        content = self._files[path]
        return Record(
            path=path,
            sha=blob_sha(content),
            content=content,
            size=len(content.encode()),
            is_dir=False,
        )

    @staticmethod
    def _dir_record(path: str) -> Record:
        return Record(path=path, sha=None, is_dir=True)

    @staticmethod
    def _checked(path: str) -> str:
        valid, error = validate_path(path)
        if not valid:
            raise NetworkFailure(error)
        return normalize_path(path)


def _under(path: str, prefix: str) -> bool:
    return not prefix or path == prefix or path.startswith(prefix + "/")
