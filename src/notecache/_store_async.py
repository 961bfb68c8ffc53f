"""NoteStoreAsync — the state container driving the cache synchronizer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from notecache.events import EventBus, StateEvent, StateEventType
from notecache.exceptions import NetworkFailure, StoreClosedError
from notecache.models import Page, Record, empty_page
from notecache.status import OperationKind, StatusRegistry
from notecache.tree import (
    ROOT_PATH,
    FetchKind,
    TreeNode,
    locate,
    merge,
    new_root,
    normalize_path,
    remove,
)
from notecache.tree import should_fetch as tree_should_fetch

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from notecache.client.protocol import RemoteStoreClient
    from notecache.status import OperationStatus

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of one note store operation.

    ``skipped`` is True when the fetch gate found the data already cached
    and no remote call was made.
    """

    success: bool
    message: str
    kind: OperationKind
    skipped: bool = False
    path: str | None = None
    record: Record | None = None
    records: list[Record] = field(default_factory=list)
    page: Page | None = None


class NoteStoreAsync:
    """Owns the tree, the flat page, the current record and operation statuses.

    Every operation follows the same shape: gated reads consult the fetch
    gate first, the status goes to LOADING, the remote client is awaited,
    and the response is merged into the tree with no further suspension
    before the new tree is assigned.  A :class:`NetworkFailure` settles the
    status to FAIL and rolls back the listing where applicable.

    Usage::

        async with NoteStoreAsync(MemoryRemoteStoreClient(files)) as store:
            await store.list_tree()
            await store.get_file("a/b.md")
            store.current.content
    """

    def __init__(
        self,
        client: RemoteStoreClient,
        *,
        event_bus: EventBus | None = None,
    ) -> None:
        self._client = client
        self._event_bus = event_bus if event_bus is not None else EventBus()
        self._status = StatusRegistry()
        self._page = empty_page()
        self._tree = new_root()
        self._current: Record | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Observed state
    # ------------------------------------------------------------------

    @property
    def page(self) -> Page:
        return self._page

    @property
    def tree(self) -> TreeNode:
        return self._tree

    @property
    def current(self) -> Record | None:
        """The most recently fetched file, None while a fetch is pending."""
        return self._current

    @property
    def status(self) -> Mapping[OperationKind, OperationStatus]:
        return self._status.snapshot()

    @property
    def client(self) -> RemoteStoreClient:
        return self._client

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    def locate(self, path: str) -> TreeNode | None:
        return locate(self._tree, path)

    def should_fetch(self, path: str, kind: FetchKind) -> bool:
        return tree_should_fetch(self._tree, path, kind)

    def subscribe(
        self,
        event_type: StateEventType,
        handler: Callable[[StateEvent], Awaitable[None]],
        *,
        kind: OperationKind | None = None,
    ) -> Callable[[], bool]:
        """Register an async *handler* called with a :class:`StateEvent`.

        Pass *kind* to hear only about one operation.  Returns a callable
        that cancels the subscription.
        """
        return self._event_bus.subscribe(event_type, handler, kind=kind)

    def unsubscribe(
        self,
        event_type: StateEventType,
        handler: Callable[[StateEvent], Awaitable[None]],
    ) -> bool:
        return self._event_bus.unsubscribe(event_type, handler)

    # ------------------------------------------------------------------
    # Operations (ungated)
    # ------------------------------------------------------------------

    async def search(
        self,
        page: int | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> OperationResult:
        """Run a remote search; the result page becomes authoritative for its directories."""
        kind = OperationKind.SEARCH
        await self._begin(kind, path)
        try:
            result = await self._client.search(page=page, path=path, query=query)
            tree = merge(self._tree, result.notes, replace_children=True)
        except NetworkFailure as err:
            self._page = empty_page()
            return await self._failed(kind, path, err, StateEventType.PAGE_CHANGED)
        except Exception:
            await self._crashed(kind, path)
            raise

        self._page = result
        self._tree = tree
        await self._settled(kind, path, StateEventType.PAGE_CHANGED, StateEventType.TREE_CHANGED)
        return OperationResult(
            success=True,
            message=f"Found {result.total} notes",
            kind=kind,
            path=path,
            records=list(result.notes),
            page=result,
        )

    async def list_tree(self) -> OperationResult:
        """Replace the whole tree with a fresh authoritative listing."""
        kind = OperationKind.LIST_TREE
        await self._begin(kind, None)
        try:
            records = await self._client.list_tree()
            tree = merge(new_root(), records, replace_children=True, listed=ROOT_PATH)
        except NetworkFailure as err:
            self._page = self._page.model_copy(update={"notes": []})
            return await self._failed(kind, None, err, StateEventType.PAGE_CHANGED)
        except Exception:
            await self._crashed(kind, None)
            raise

        self._page = self._page.model_copy(update={"notes": records})
        self._tree = tree
        await self._settled(kind, None, StateEventType.PAGE_CHANGED, StateEventType.TREE_CHANGED)
        return OperationResult(
            success=True,
            message=f"Listed {len(records)} entries",
            kind=kind,
            records=records,
        )

    async def save_file(self, path: str, content: str, sha: str | None = None) -> OperationResult:
        """Save *content* at *path*; *sha* is the revision being replaced."""
        kind = OperationKind.SAVE_FILE
        path = normalize_path(path)
        await self._begin(kind, path)
        try:
            response = await self._client.save_file(path, content, sha)
            record = response.model_copy(update={"content": content})
            tree = merge(self._tree, [record], replace_children=False)
        except NetworkFailure as err:
            return await self._failed(kind, path, err)
        except Exception:
            await self._crashed(kind, path)
            raise

        self._page = self._page.model_copy(
            update={"notes": _replace_record(self._page.notes, record, sha)}
        )
        self._tree = tree
        await self._settled(kind, path, StateEventType.PAGE_CHANGED, StateEventType.TREE_CHANGED)
        return OperationResult(
            success=True,
            message=f"Saved {path}",
            kind=kind,
            path=path,
            record=record,
        )

    async def delete_file(self, path: str, sha: str | None = None) -> OperationResult:
        """Delete *path* remotely, then drop it from the page and the tree."""
        kind = OperationKind.DELETE_FILE
        path = normalize_path(path)
        await self._begin(kind, path)
        try:
            await self._client.delete_file(path, sha)
        except NetworkFailure as err:
            return await self._failed(kind, path, err)
        except Exception:
            await self._crashed(kind, path)
            raise

        notes = [n for n in self._page.notes if normalize_path(n.path) != path]
        self._page = self._page.model_copy(update={"notes": notes})
        removed = remove(self._tree, path)
        if not removed:
            logger.debug("Deleted %s was not in the local tree", path)
        await self._settled(kind, path, StateEventType.PAGE_CHANGED, StateEventType.TREE_CHANGED)
        return OperationResult(success=True, message=f"Deleted {path}", kind=kind, path=path)

    async def delete_node(self, node: TreeNode) -> OperationResult:
        """Delete the file a tree node stands for, using its own revision tag."""
        return await self.delete_file(node.path, node.sha)

    # ------------------------------------------------------------------
    # Operations (gated)
    # ------------------------------------------------------------------

    async def list_directory(self, path: str, *, force: bool = False) -> OperationResult:
        """List *path* unless its children are already known to be complete."""
        kind = OperationKind.LIST_DIRECTORY
        path = normalize_path(path)
        self._ensure_open()
        if not force and not self.should_fetch(path, FetchKind.DIRECTORY):
            logger.debug("Skipping listing of %r: already cached", path)
            return OperationResult(
                success=True,
                message=f"Directory already cached: {path!r}",
                kind=kind,
                skipped=True,
                path=path,
            )

        await self._begin(kind, path)
        try:
            records = await self._client.list_directory(path)
            tree = merge(self._tree, records, replace_children=True, listed=path)
        except NetworkFailure as err:
            self._page = self._page.model_copy(update={"notes": []})
            return await self._failed(kind, path, err, StateEventType.PAGE_CHANGED)
        except Exception:
            await self._crashed(kind, path)
            raise

        self._page = self._page.model_copy(update={"notes": records})
        self._tree = tree
        await self._settled(kind, path, StateEventType.PAGE_CHANGED, StateEventType.TREE_CHANGED)
        return OperationResult(
            success=True,
            message=f"Listed {len(records)} entries in {path!r}",
            kind=kind,
            path=path,
            records=records,
        )

    async def get_file(self, path: str, *, force: bool = False) -> OperationResult:
        """Fetch *path* into ``current`` unless its content is already cached."""
        kind = OperationKind.GET_FILE
        path = normalize_path(path)
        self._ensure_open()
        if not force and not self.should_fetch(path, FetchKind.FILE):
            logger.debug("Skipping fetch of %r: already cached", path)
            return OperationResult(
                success=True,
                message=f"File already cached: {path}",
                kind=kind,
                skipped=True,
                path=path,
            )

        self._current = None
        await self._emit(StateEventType.CURRENT_CHANGED, kind, path)
        await self._begin(kind, path)
        try:
            record = await self._client.get_file(path)
            tree = merge(self._tree, [record], replace_children=False)
        except NetworkFailure as err:
            return await self._failed(kind, path, err)
        except Exception:
            await self._crashed(kind, path)
            raise

        self._current = record
        self._tree = tree
        await self._settled(
            kind, path, StateEventType.CURRENT_CHANGED, StateEventType.TREE_CHANGED
        )
        return OperationResult(
            success=True,
            message=f"Fetched {path}",
            kind=kind,
            path=path,
            record=record,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def reset_status(self) -> None:
        """Return every operation status to IDLE."""
        self._status.reset()
        await self._emit(StateEventType.STATUS_CHANGED, None, None)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the remote client.  Further operations raise StoreClosedError."""
        if self._closed:
            return
        self._closed = True
        await self._client.close()

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> NoteStoreAsync:
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Note store is closed")

    async def _begin(self, kind: OperationKind, path: str | None) -> None:
        self._ensure_open()
        self._status.start(kind)
        await self._emit(StateEventType.STATUS_CHANGED, kind, path)

    async def _settled(
        self, kind: OperationKind, path: str | None, *changed: StateEventType
    ) -> None:
        self._status.succeed(kind)
        for event_type in changed:
            await self._emit(event_type, kind, path)
        await self._emit(StateEventType.STATUS_CHANGED, kind, path)

    async def _failed(
        self,
        kind: OperationKind,
        path: str | None,
        err: NetworkFailure,
        *changed: StateEventType,
    ) -> OperationResult:
        logger.warning("%s failed for %r: %s", kind.value, path, err)
        self._status.fail(kind)
        for event_type in changed:
            await self._emit(event_type, kind, path)
        await self._emit(StateEventType.STATUS_CHANGED, kind, path)
        return OperationResult(success=False, message=str(err), kind=kind, path=path)

    async def _crashed(self, kind: OperationKind, path: str | None) -> None:
        logger.error("%s raised unexpectedly for %r", kind.value, path, exc_info=True)
        self._status.fail(kind)
        await self._emit(StateEventType.STATUS_CHANGED, kind, path)

    async def _emit(
        self, event_type: StateEventType, kind: OperationKind | None, path: str | None
    ) -> None:
        await self._event_bus.emit(StateEvent(event_type=event_type, kind=kind, path=path))


def _replace_record(notes: list[Record], record: Record, previous_sha: str | None) -> list[Record]:
    """Drop any page entry for the same path or revision, then append *record*."""
    path = normalize_path(record.path)
    tokens = {t for t in (previous_sha, record.sha) if t is not None}
    kept = [n for n in notes if normalize_path(n.path) != path and n.sha not in tokens]
    kept.append(record)
    return kept
