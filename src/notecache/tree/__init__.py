"""Path tree: node model, merge, locate, remove and fetch gating."""

from notecache.tree.gate import FetchKind, should_fetch
from notecache.tree.locator import locate
from notecache.tree.merge import merge
from notecache.tree.remover import remove
from notecache.tree.types import ROOT_NAME, ROOT_PATH, TreeNode, new_root
from notecache.tree.utils import (
    ancestor_paths,
    normalize_path,
    parent_path,
    path_name,
    path_segments,
    split_path,
    validate_path,
)

__all__ = [
    "ROOT_NAME",
    "ROOT_PATH",
    "FetchKind",
    "TreeNode",
    "ancestor_paths",
    "locate",
    "merge",
    "new_root",
    "normalize_path",
    "parent_path",
    "path_name",
    "path_segments",
    "remove",
    "should_fetch",
    "split_path",
    "validate_path",
]
