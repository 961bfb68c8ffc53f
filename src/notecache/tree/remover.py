"""Remove a single node, with its subtree, from the tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .locator import locate
from .utils import parent_path

if TYPE_CHECKING:
    from .types import TreeNode

logger = logging.getLogger(__name__)


def remove(tree: TreeNode, path: str) -> bool:
    """Remove the node at *path* from its parent's children, in place.

    Emptied ancestors stay in the tree with their ``cached`` flag as-is.
    Returns False when *path* is the root or does not resolve.
    """
    node = locate(tree, path)
    if node is None or node.is_root:
        logger.debug("Nothing to remove at %r", path)
        return False

    parent = locate(tree, parent_path(node.path))
    assert parent is not None and parent.children is not None
    parent.children = [c for c in parent.children if c is not node]
    return True
