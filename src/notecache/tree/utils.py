"""Path utilities for tree paths.

Tree paths are slash-separated and relative to the repository root: no
leading or trailing slash, and the empty string names the root itself.
"""

from __future__ import annotations

import posixpath

MAX_PATH_LENGTH = 4096
MAX_NAME_LENGTH = 255


def normalize_path(path: str) -> str:
    """Normalize a tree path.

    - Strips surrounding whitespace and slashes
    - Resolves . and .. references
    - Removes double slashes

    Examples:
        normalize_path("/a//b.md") -> "a/b.md"
        normalize_path("a/./b/") -> "a/b"
        normalize_path("a/../b.md") -> "b.md"
        normalize_path("/") -> ""
        normalize_path("") -> ""
    """
    if not path:
        return ""

    path = path.strip().strip("/")
    if not path:
        return ""

    path = posixpath.normpath(path)
    if path == ".":
        return ""
    return path


def split_path(path: str) -> tuple[str, str]:
    """Split path into (parent_path, name).

    Examples:
        split_path("a/b.md") -> ("a", "b.md")
        split_path("b.md") -> ("", "b.md")
        split_path("") -> ("", "")
    """
    path = normalize_path(path)
    if not path:
        return "", ""
    parent, _, name = path.rpartition("/")
    return parent, name


def parent_path(path: str) -> str:
    return split_path(path)[0]


def path_name(path: str) -> str:
    return split_path(path)[1]


def path_segments(path: str) -> list[str]:
    """Return the segments of *path*; the root has none."""
    path = normalize_path(path)
    return path.split("/") if path else []


def ancestor_paths(path: str) -> list[str]:
    """Return the strict ancestors of *path*, outermost first, excluding the root.

    Examples:
        ancestor_paths("a/b/c.md") -> ["a", "a/b"]
        ancestor_paths("c.md") -> []
    """
    segments = path_segments(path)
    return ["/".join(segments[: i + 1]) for i in range(len(segments) - 1)]


def validate_path(path: str) -> tuple[bool, str]:
    """Validate a path for safety.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if "\x00" in path:
        return False, "Path contains null bytes"

    for ch in path:
        code = ord(ch)
        if 0x01 <= code <= 0x1F:
            return False, f"Path contains control character: 0x{code:02x}"

    if len(path) > MAX_PATH_LENGTH:
        return False, f"Path too long (max {MAX_PATH_LENGTH} characters)"

    normalized = normalize_path(path)
    if normalized == ".." or normalized.startswith("../"):
        return False, f"Path escapes the repository root: {path}"

    for segment in path_segments(normalized):
        if len(segment) > MAX_NAME_LENGTH:
            return False, f"Name too long (max {MAX_NAME_LENGTH} characters)"

    return True, ""
