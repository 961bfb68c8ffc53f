"""NoteStore — synchronous facade over NoteStoreAsync."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any

from notecache._store_async import NoteStoreAsync
from notecache.client.config import ClientConfig
from notecache.client.http import HttpRemoteStoreClient
from notecache.exceptions import StoreClosedError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from notecache._store_async import OperationResult
    from notecache.client.protocol import RemoteStoreClient
    from notecache.events import StateEvent, StateEventType
    from notecache.models import Page, Record
    from notecache.status import OperationKind, OperationStatus
    from notecache.tree import FetchKind, TreeNode

logger = logging.getLogger(__name__)


class NoteStore:
    """Synchronous note store backed by a private event loop in a daemon thread.

    All state lives in a :class:`NoteStoreAsync` that is only ever touched
    from the private loop, so merges stay atomic even when callers block
    from several threads.

    Usage::

        with NoteStore.connect("https://notes.example.com/api") as store:
            store.list_tree()
            store.get_file("journal/today.md")
            print(store.current.content)
    """

    def __init__(self, client: RemoteStoreClient) -> None:
        self._closed = False

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        self._async = NoteStoreAsync(client)
        self._observers: dict[tuple[StateEventType, int], list[Callable[[], bool]]] = {}

    @classmethod
    def connect(
        cls,
        base_url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> NoteStore:
        """Build a store talking to the HTTP notes API at *base_url*."""
        config = ClientConfig(base_url=base_url, headers=dict(headers or {}))
        if timeout is not None:
            config.timeout = timeout
        return cls(HttpRemoteStoreClient(config))

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        if self._closed:
            coro.close()
            raise StoreClosedError("Note store is closed")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    # ------------------------------------------------------------------
    # Observed state
    # ------------------------------------------------------------------

    @property
    def page(self) -> Page:
        return self._async.page

    @property
    def tree(self) -> TreeNode:
        return self._async.tree

    @property
    def current(self) -> Record | None:
        return self._async.current

    @property
    def status(self) -> Mapping[OperationKind, OperationStatus]:
        return self._async.status

    def locate(self, path: str) -> TreeNode | None:
        return self._async.locate(path)

    def should_fetch(self, path: str, kind: FetchKind) -> bool:
        return self._async.should_fetch(path, kind)

    def subscribe(
        self,
        event_type: StateEventType,
        handler: Callable[[StateEvent], Any],
        *,
        kind: OperationKind | None = None,
    ) -> Callable[[], bool]:
        """Register *handler*, sync or async, for *event_type*.

        Sync handlers run on the private loop thread.  Every call makes a
        separate subscription, and the returned callable cancels only that
        one.
        """
        if inspect.iscoroutinefunction(handler):
            wrapped = handler
        else:

            async def wrapped(event: StateEvent) -> None:
                handler(event)

        key = (event_type, id(handler))
        detach = self._async.subscribe(event_type, wrapped, kind=kind)

        def cancel() -> bool:
            pending = self._observers.get(key, [])
            if cancel in pending:
                pending.remove(cancel)
                if not pending:
                    del self._observers[key]
            return detach()

        self._observers.setdefault(key, []).append(cancel)
        return cancel

    def unsubscribe(
        self, event_type: StateEventType, handler: Callable[[StateEvent], Any]
    ) -> bool:
        """Cancel the oldest subscription of *handler* to *event_type*."""
        pending = self._observers.get((event_type, id(handler)))
        if not pending:
            return False
        return pending[0]()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def search(
        self,
        page: int | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> OperationResult:
        return self._run(self._async.search(page=page, path=path, query=query))

    def list_tree(self) -> OperationResult:
        return self._run(self._async.list_tree())

    def list_directory(self, path: str, *, force: bool = False) -> OperationResult:
        return self._run(self._async.list_directory(path, force=force))

    def get_file(self, path: str, *, force: bool = False) -> OperationResult:
        return self._run(self._async.get_file(path, force=force))

    def save_file(self, path: str, content: str, sha: str | None = None) -> OperationResult:
        return self._run(self._async.save_file(path, content, sha))

    def delete_file(self, path: str, sha: str | None = None) -> OperationResult:
        return self._run(self._async.delete_file(path, sha))

    def delete_node(self, node: TreeNode) -> OperationResult:
        return self._run(self._async.delete_node(node))

    def reset_status(self) -> None:
        self._run(self._async.reset_status())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the client, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            asyncio.run_coroutine_threadsafe(self._async.close(), self._loop).result()
        finally:
            logger.debug("Stopping note store loop")
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)

    def __enter__(self) -> NoteStore:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()
