"""TreeNode — the local mirror of one remote path."""

from __future__ import annotations

from dataclasses import dataclass

ROOT_NAME = "root"
ROOT_PATH = ""


@dataclass
class TreeNode:
    """A file or directory in the local tree.

    Attributes:
        name: Last path segment, used as the display label.
        path: Full path, unique within the tree. ``""`` is the root.
        is_dir: Directories carry ``children``; files carry ``content``.
        sha: Revision tag from the remote store, once fetched.
        content: File body, once retrieved.
        size: File size reported with the body.
        cached: The node's own data (file body or full child listing)
            is known locally and needs no further fetch.
        children: ``None`` until the directory has been listed, ``[]``
            when listed and empty. Always ``None`` for files.
    """

    name: str
    path: str
    is_dir: bool
    sha: str | None = None
    content: str | None = None
    size: int | None = None
    cached: bool = False
    children: list[TreeNode] | None = None

    @property
    def is_root(self) -> bool:
        return self.path == ROOT_PATH

    @property
    def listed(self) -> bool:
        """True once the directory's children have been populated."""
        return self.children is not None

    def child(self, path: str) -> TreeNode | None:
        """Return the direct child whose path equals *path*, if any."""
        for node in self.children or ():
            if node.path == path:
                return node
        return None


def new_root() -> TreeNode:
    """Build the default, unlisted root directory."""
    return TreeNode(name=ROOT_NAME, path=ROOT_PATH, is_dir=True, cached=False)
