"""Per-operation status tracking (IDLE / LOADING / FAIL)."""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    """Asynchronous operations whose progress is tracked."""

    SEARCH = "search"
    LIST_TREE = "list_tree"
    LIST_DIRECTORY = "list_directory"
    GET_FILE = "get_file"
    SAVE_FILE = "save_file"
    DELETE_FILE = "delete_file"


class OperationStatus(str, Enum):
    """Status of the most recent attempt of one operation kind.

    There is no success state: completion returns to IDLE, so a status
    only says "in flight" or "last attempt failed".
    """

    IDLE = "idle"
    LOADING = "loading"
    FAIL = "fail"


class StatusRegistry:
    """Independent state machines, one per :class:`OperationKind`.

    ``start`` enters LOADING from any state; ``succeed`` and ``fail``
    settle to IDLE and FAIL respectively; ``reset`` returns every kind to
    IDLE at once.
    """

    def __init__(self) -> None:
        self._statuses: dict[OperationKind, OperationStatus] = {
            kind: OperationStatus.IDLE for kind in OperationKind
        }

    def get(self, kind: OperationKind) -> OperationStatus:
        return self._statuses[kind]

    def start(self, kind: OperationKind) -> None:
        self._set(kind, OperationStatus.LOADING)

    def succeed(self, kind: OperationKind) -> None:
        self._set(kind, OperationStatus.IDLE)

    def fail(self, kind: OperationKind) -> None:
        self._set(kind, OperationStatus.FAIL)

    def reset(self) -> None:
        """Return every tracked operation to IDLE."""
        for kind in OperationKind:
            self._statuses[kind] = OperationStatus.IDLE

    def snapshot(self) -> Mapping[OperationKind, OperationStatus]:
        """Read-only copy of the current statuses."""
        return MappingProxyType(dict(self._statuses))

    def _set(self, kind: OperationKind, status: OperationStatus) -> None:
        previous = self._statuses[kind]
        self._statuses[kind] = status
        logger.debug("%s: %s -> %s", kind.value, previous.value, status.value)
