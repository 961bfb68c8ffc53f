"""notecache: a client-side cache of a remote notes repository.

Merges remote listings into a local path tree, tracks which nodes are
already cached, and skips fetches the tree can already answer.
"""

__version__ = "0.0.3"

from notecache._store import NoteStore
from notecache._store_async import NoteStoreAsync, OperationResult
from notecache.client import (
    ClientConfig,
    HttpRemoteStoreClient,
    MemoryRemoteStoreClient,
    RemoteStoreClient,
)
from notecache.events import EventBus, StateEvent, StateEventType
from notecache.exceptions import (
    InvalidPathError,
    NetworkFailure,
    NoteCacheError,
    StoreClosedError,
)
from notecache.models import Page, Record
from notecache.status import OperationKind, OperationStatus, StatusRegistry
from notecache.tree import FetchKind, TreeNode, locate, merge, new_root, remove, should_fetch

__all__ = [
    "ClientConfig",
    "EventBus",
    "FetchKind",
    "HttpRemoteStoreClient",
    "InvalidPathError",
    "MemoryRemoteStoreClient",
    "NetworkFailure",
    "NoteCacheError",
    "NoteStore",
    "NoteStoreAsync",
    "OperationKind",
    "OperationResult",
    "OperationStatus",
    "Page",
    "Record",
    "RemoteStoreClient",
    "StateEvent",
    "StateEventType",
    "StatusRegistry",
    "StoreClosedError",
    "TreeNode",
    "__version__",
    "locate",
    "merge",
    "new_root",
    "remove",
    "should_fetch",
]
