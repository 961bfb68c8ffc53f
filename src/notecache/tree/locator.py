"""Resolve tree paths to nodes by walking segments from the root."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .utils import normalize_path, path_segments

if TYPE_CHECKING:
    from .types import TreeNode


def locate(tree: TreeNode, path: str) -> TreeNode | None:
    """Return the node at exactly *path*, or ``None`` if any segment is missing.

    Read-only.  There is no prefix matching: ``"a/b"`` never resolves to
    ``"a/bc"`` or to ``"a"``.
    """
    node = tree
    prefix = ""
    for segment in path_segments(normalize_path(path)):
        prefix = f"{prefix}/{segment}" if prefix else segment
        node = node.child(prefix)
        if node is None:
            return None
    return node
