"""Tree Merge Engine — fold flat record lists into the local tree.

Two modes:

* **incremental** (``replace_children=False``): only the named paths are
  created or updated; siblings are left alone.  Used for single-file
  fetches and saves.
* **authoritative** (``replace_children=True``): the batch is the complete
  child set of every directory that directly contains one of its records,
  and of the *listed* directory when one is named, even if the batch is
  empty.  Children missing from the batch are pruned and those directories
  are marked cached.  Used for directory listings, full-tree listings and
  search results.

Directories that are only walked through as path components are never
marked cached here; they still need their own listing.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING

from notecache.exceptions import InvalidPathError

from .locator import locate
from .types import TreeNode
from .utils import ancestor_paths, normalize_path, parent_path, path_name, validate_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notecache.models import Record

logger = logging.getLogger(__name__)


def merge(
    tree: TreeNode,
    records: Iterable[Record],
    replace_children: bool = False,
    *,
    listed: str | None = None,
) -> TreeNode:
    """Return a copy of *tree* with *records* merged in.

    *tree* itself is not modified and node identity is not preserved.
    Records are applied in path order, so the result does not depend on
    the order of *records*, and merging the same batch twice is a no-op.

    *listed* names the directory an authoritative batch was listed from.
    It ends up listed and cached with exactly the batch as children, so an
    empty batch empties it.
    """
    if listed is not None and not replace_children:
        raise ValueError("listed requires replace_children=True")

    result = copy.deepcopy(tree)
    batch = sorted(
        ((_checked_path(r.path), r) for r in records),
        key=lambda item: (item[0], item[1].is_dir, item[1].sha or "", item[1].content),
    )

    listed_dirs: set[str] = set()
    keep: set[str] = set()

    if listed is not None:
        listed = _checked_path(listed)
        _ensure_dir(result, listed)
        listed_dirs.add(listed)
        keep.add(listed)
        keep.update(ancestor_paths(listed))

    for path, record in batch:
        if not path:
            # The root is implicit; a record naming it carries nothing to apply.
            continue
        parent = _ensure_ancestors(result, path)
        _apply_record(parent, path, record)
        if replace_children:
            listed_dirs.add(parent.path)
            keep.add(path)
            keep.update(ancestor_paths(path))

    for dir_path in sorted(listed_dirs):
        directory = locate(result, dir_path)
        if directory is None or directory.children is None:
            continue
        pruned = [c.path for c in directory.children if c.path not in keep]
        if pruned:
            logger.debug("Pruning %d stale children of %r: %s", len(pruned), dir_path, pruned)
        directory.children = [c for c in directory.children if c.path in keep]
        directory.cached = True

    logger.debug(
        "Merged %d records (replace_children=%s, listed dirs=%d)",
        len(batch),
        replace_children,
        len(listed_dirs),
    )
    return result


def _checked_path(path: str) -> str:
    valid, error = validate_path(path)
    if not valid:
        raise InvalidPathError(error)
    return normalize_path(path)


def _ensure_ancestors(root: TreeNode, path: str) -> TreeNode:
    """Walk from *root* to the parent of *path*, creating missing directories.

    Returns the parent directory, guaranteed to have a children list.
    """
    node = root
    for ancestor in ancestor_paths(path):
        if node.children is None:
            node.children = []
        child = node.child(ancestor)
        if child is None:
            child = TreeNode(
                name=path_name(ancestor),
                path=ancestor,
                is_dir=True,
                cached=False,
                children=[],
            )
            node.children.append(child)
        elif not child.is_dir:
            _become_dir(child, children=[])
        node = child

    if node.children is None:
        node.children = []
    return node


def _ensure_dir(root: TreeNode, path: str) -> TreeNode:
    """Make *path* an existing directory with a children list."""
    if not path:
        node = root
    else:
        parent = _ensure_ancestors(root, path)
        assert parent.children is not None
        node = parent.child(path)
        if node is None:
            node = TreeNode(name=path_name(path), path=path, is_dir=True, children=[])
            parent.children.append(node)
        elif not node.is_dir:
            _become_dir(node, children=[])
    if node.children is None:
        node.children = []
    return node


def _apply_record(parent: TreeNode, path: str, record: Record) -> TreeNode:
    assert parent.children is not None
    assert parent_path(path) == parent.path

    node = parent.child(path)
    if node is None:
        node = TreeNode(name=path_name(path), path=path, is_dir=record.is_dir)
        parent.children.append(node)

    node.name = path_name(path)
    node.path = path
    node.sha = record.sha

    if record.is_dir:
        if not node.is_dir:
            _become_dir(node, children=None)
    else:
        node.is_dir = False
        node.children = None
        node.content = record.content
        node.size = record.size
        node.cached = True
    return node


def _become_dir(node: TreeNode, children: list[TreeNode] | None) -> None:
    node.is_dir = True
    node.content = None
    node.size = None
    node.cached = False
    node.children = children
