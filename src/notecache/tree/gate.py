"""Fetch Gatekeeper — decide whether a passive read must hit the remote store.

Only directory listings and single-file gets are gated.  Search,
full-tree listing, save and delete always reach the remote store.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from .locator import locate

if TYPE_CHECKING:
    from .types import TreeNode


class FetchKind(str, Enum):
    """The kind of gated read being requested."""

    DIRECTORY = "directory"
    FILE = "file"


def should_fetch(tree: TreeNode, path: str, kind: FetchKind) -> bool:
    """Return True if a fetch of *path* is needed given the current *tree*.

    Evaluated against the snapshot at dispatch time; two requests for the
    same path dispatched back to back may both pass.
    """
    node = locate(tree, path)
    if kind is FetchKind.FILE:
        return node is None or not node.cached
    return _should_list(node)


def _should_list(node: TreeNode | None) -> bool:
    if node is None:
        return True
    # An unlisted directory can't vouch for its membership, whatever `cached` says.
    if not node.listed:
        return True
    assert node.children is not None
    has_files = any(not child.is_dir for child in node.children)
    return not node.cached and has_files
