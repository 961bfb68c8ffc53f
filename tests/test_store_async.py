"""Tests for NoteStoreAsync — operations, gating, rollback and status."""

from __future__ import annotations

import asyncio
import logging

import pytest

from notecache._store_async import NoteStoreAsync
from notecache.client.memory import MemoryRemoteStoreClient, blob_sha
from notecache.exceptions import NetworkFailure, StoreClosedError
from notecache.models import Page, Record
from notecache.status import OperationKind, OperationStatus
from notecache.tree import FetchKind, new_root

# ------------------------------------------------------------------
# Fake clients
# ------------------------------------------------------------------


class FailingClient(MemoryRemoteStoreClient):
    """Memory client whose listed methods reject with NetworkFailure."""

    def __init__(self, files: dict[str, str] | None = None, failing: set[str] | None = None):
        super().__init__(files)
        self.failing = failing or set()

    def _maybe_fail(self, method: str) -> None:
        if method in self.failing:
            raise NetworkFailure(f"{method} unavailable")

    async def search(self, page=None, path=None, query=None) -> Page:
        self._maybe_fail("search")
        return await super().search(page, path, query)

    async def list_tree(self) -> list[Record]:
        self._maybe_fail("list_tree")
        return await super().list_tree()

    async def list_directory(self, path: str) -> list[Record]:
        self._maybe_fail("list_directory")
        return await super().list_directory(path)

    async def get_file(self, path: str) -> Record:
        self._maybe_fail("get_file")
        return await super().get_file(path)

    async def save_file(self, path: str, content: str, sha: str | None = None) -> Record:
        self._maybe_fail("save_file")
        return await super().save_file(path, content, sha)

    async def delete_file(self, path: str, sha: str | None = None) -> None:
        self._maybe_fail("delete_file")
        await super().delete_file(path, sha)


class GatedClient(MemoryRemoteStoreClient):
    """Memory client whose get_file waits for an event before answering."""

    def __init__(self, files: dict[str, str]) -> None:
        super().__init__(files)
        self.release = asyncio.Event()
        self.waiting = asyncio.Event()

    async def get_file(self, path: str) -> Record:
        self.waiting.set()
        await self.release.wait()
        return await super().get_file(path)


class ScriptedListingClient(MemoryRemoteStoreClient):
    """Memory client whose directory listings come from a fixed table."""

    def __init__(self, listings: dict[str, list[Record]]) -> None:
        super().__init__()
        self.listings = listings

    async def list_directory(self, path: str) -> list[Record]:
        self.calls.append(("list_directory", path))
        return list(self.listings.get(path, []))


class BrokenClient(MemoryRemoteStoreClient):
    async def get_file(self, path: str) -> Record:
        raise RuntimeError("bug in client")


FILES = {"a/b.md": "first", "a/c.md": "second", "top.md": "top"}


# ------------------------------------------------------------------
# Initial state
# ------------------------------------------------------------------


class TestInitialState:
    async def test_defaults(self, store: NoteStoreAsync) -> None:
        assert store.page == Page(total=1, notes=[])
        assert store.tree == new_root()
        assert store.current is None
        assert set(store.status.values()) == {OperationStatus.IDLE}
        assert store.closed is False


# ------------------------------------------------------------------
# search
# ------------------------------------------------------------------


class TestSearch:
    async def test_search_sets_page_and_tree(self, store: NoteStoreAsync) -> None:
        result = await store.search(query="notes")

        assert result.success
        assert store.page.total == 2
        assert [n.path for n in store.page.notes] == ["README.md", "journal/2024-01-01.md"]
        assert store.locate("journal/2024-01-01.md") is not None
        assert store.status[OperationKind.SEARCH] is OperationStatus.IDLE

    async def test_search_results_are_authoritative(self, store: NoteStoreAsync) -> None:
        await store.list_tree()
        await store.search(path="journal", query="second")

        journal = store.locate("journal")
        assert journal is not None
        assert journal.cached is True
        assert [c.path for c in journal.children or []] == ["journal/2024-01-02.md"]

    async def test_search_always_reaches_remote(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        await store.search()
        await store.search()
        assert [c for c in memory_client.calls if c[0] == "search"] == [("search", None)] * 2

    async def test_search_failure_resets_page(self) -> None:
        client = FailingClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.search()
            tree_before = store.tree
            client.failing.add("search")
            result = await store.search(page=2)

            assert result.success is False
            assert "search unavailable" in result.message
            assert store.page == Page(total=1, notes=[])
            assert store.tree is tree_before
            assert store.status[OperationKind.SEARCH] is OperationStatus.FAIL

    async def test_two_failures_then_reset(self) -> None:
        async with NoteStoreAsync(FailingClient(FILES, {"search"})) as store:
            for _ in range(2):
                await store.search()
                assert store.status[OperationKind.SEARCH] is OperationStatus.FAIL
            await store.reset_status()
            assert store.status[OperationKind.SEARCH] is OperationStatus.IDLE


# ------------------------------------------------------------------
# list_tree
# ------------------------------------------------------------------


class TestListTree:
    async def test_builds_fresh_tree(self, store: NoteStoreAsync) -> None:
        await store.save_file("scratch.md", "temp")
        await store.list_tree()

        assert store.tree.cached is True
        assert store.locate("projects/notecache/todo.md") is not None
        notecache = store.locate("projects/notecache")
        assert notecache is not None and notecache.cached is True
        assert store.locate("scratch.md") is not None
        assert len(store.page.notes) == 9

    async def test_discards_prior_tree(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            await client.delete_file("top.md")
            await store.list_tree()
            assert store.locate("top.md") is None

    async def test_empty_repository(self) -> None:
        client = MemoryRemoteStoreClient()
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            assert store.tree.children == []
            assert store.tree.cached is True
            assert store.should_fetch("", FetchKind.DIRECTORY) is False
            assert (await store.list_directory("")).skipped

    async def test_keeps_page_total(self, store: NoteStoreAsync) -> None:
        await store.search()
        await store.list_tree()
        assert store.page.total == 5

    async def test_failure_clears_notes_keeps_tree(self) -> None:
        client = FailingClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            tree_before = store.tree
            client.failing.add("list_tree")
            result = await store.list_tree()

            assert result.success is False
            assert store.page.notes == []
            assert store.tree is tree_before
            assert store.status[OperationKind.LIST_TREE] is OperationStatus.FAIL


# ------------------------------------------------------------------
# list_directory
# ------------------------------------------------------------------


class TestListDirectory:
    async def test_lists_unknown_directory(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        result = await store.list_directory("journal")

        assert result.success and not result.skipped
        assert [r.path for r in store.page.notes] == [
            "journal/2024-01-01.md",
            "journal/2024-01-02.md",
        ]
        journal = store.locate("journal")
        assert journal is not None and journal.cached is True
        assert memory_client.calls == [("list_directory", "journal")]

    async def test_cached_directory_skipped(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        await store.list_directory("journal")
        result = await store.list_directory("journal")

        assert result.success and result.skipped
        assert memory_client.calls == [("list_directory", "journal")]
        assert store.status[OperationKind.LIST_DIRECTORY] is OperationStatus.IDLE

    async def test_force_bypasses_gate(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        await store.list_directory("journal")
        result = await store.list_directory("journal", force=True)
        assert not result.skipped
        assert len(memory_client.calls) == 2

    async def test_uncached_directory_with_file_refetched(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.get_file("a/b.md")
            assert store.should_fetch("a", FetchKind.DIRECTORY)

            await store.list_directory("a")
            a = store.locate("a")
            assert a is not None and a.cached is True
            assert [c.path for c in a.children or []] == ["a/b.md", "a/c.md"]

    async def test_listing_prunes_remotely_deleted(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_directory("a")
            await client.delete_file("a/c.md")
            await store.list_directory("a", force=True)
            assert store.locate("a/c.md") is None
            assert store.locate("a/b.md") is not None

    async def test_empty_listing_clears_stale_children(self) -> None:
        client = ScriptedListingClient(
            {
                "a": [
                    Record(path="a/b.md", sha="s1", content="b", size=1),
                    Record(path="a/c.md", sha="s2", content="c", size=1),
                ]
            }
        )
        async with NoteStoreAsync(client) as store:
            await store.list_directory("a")
            client.listings["a"] = []
            result = await store.list_directory("a", force=True)

            assert result.success
            a = store.locate("a")
            assert a is not None
            assert a.children == []
            assert a.cached is True
            assert store.locate("a/b.md") is None
            assert store.locate("a/c.md") is None
            assert store.page.notes == []
            assert store.should_fetch("a", FetchKind.DIRECTORY) is False

    async def test_empty_directory_listed_once(self) -> None:
        client = ScriptedListingClient({})
        async with NoteStoreAsync(client) as store:
            await store.list_directory("empty")
            result = await store.list_directory("empty")

        assert result.skipped
        assert client.calls == [("list_directory", "empty")]

    async def test_root_listing(self, store: NoteStoreAsync) -> None:
        await store.list_directory("")
        assert store.tree.cached is True
        assert [c.path for c in store.tree.children or []] == ["README.md", "journal", "projects"]
        projects = store.locate("projects")
        assert projects is not None and projects.children is None

    async def test_failure_clears_notes(self) -> None:
        async with NoteStoreAsync(FailingClient(FILES, {"list_directory"})) as store:
            result = await store.list_directory("a")
            assert result.success is False
            assert store.page.notes == []
            assert store.tree == new_root()
            assert store.status[OperationKind.LIST_DIRECTORY] is OperationStatus.FAIL


# ------------------------------------------------------------------
# get_file
# ------------------------------------------------------------------


class TestGetFile:
    async def test_fetch_sets_current_and_caches(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        result = await store.get_file("journal/2024-01-02.md")

        assert result.success
        assert store.current is not None
        assert store.current.content == "Second day."
        node = store.locate("journal/2024-01-02.md")
        assert node is not None
        assert node.cached and node.content == "Second day."
        journal = store.locate("journal")
        assert journal is not None and journal.cached is False

    async def test_cached_file_skipped(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        await store.get_file("README.md")
        current = store.current
        result = await store.get_file("README.md")

        assert result.skipped
        assert store.current is current
        assert memory_client.calls == [("get_file", "README.md")]

    async def test_file_from_listing_is_cached(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        await store.list_directory("journal")
        result = await store.get_file("journal/2024-01-01.md")
        assert result.skipped
        assert ("get_file", "journal/2024-01-01.md") not in memory_client.calls

    async def test_current_cleared_while_loading(self) -> None:
        client = GatedClient(FILES)
        async with NoteStoreAsync(client) as store:
            client.release.set()
            await store.get_file("top.md")
            assert store.current is not None
            client.release.clear()
            client.waiting.clear()

            task = asyncio.create_task(store.get_file("a/b.md"))
            await client.waiting.wait()
            assert store.current is None
            assert store.status[OperationKind.GET_FILE] is OperationStatus.LOADING

            client.release.set()
            await task
            assert store.current is not None
            assert store.current.path == "a/b.md"

    async def test_failure_sets_fail_only(self) -> None:
        client = FailingClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            page_before = store.page
            tree_before = store.tree
            client.failing.add("get_file")
            result = await store.get_file("a/b.md", force=True)

            assert result.success is False
            assert store.current is None
            assert store.page is page_before
            assert store.tree is tree_before
            assert store.status[OperationKind.GET_FILE] is OperationStatus.FAIL

    async def test_unexpected_error_propagates(self, caplog: pytest.LogCaptureFixture) -> None:
        async with NoteStoreAsync(BrokenClient(FILES)) as store:
            with caplog.at_level(logging.ERROR, logger="notecache._store_async"):
                with pytest.raises(RuntimeError, match="bug in client"):
                    await store.get_file("a/b.md")
            assert store.status[OperationKind.GET_FILE] is OperationStatus.FAIL
            assert "get_file raised unexpectedly" in caplog.text


# ------------------------------------------------------------------
# save_file
# ------------------------------------------------------------------


class TestSaveFile:
    async def test_save_replaces_page_record(self) -> None:
        client = MemoryRemoteStoreClient({"a/b.md": "v1"})
        async with NoteStoreAsync(client) as store:
            await store.search()
            old_sha = blob_sha("v1")
            assert [n.sha for n in store.page.notes] == [old_sha]

            result = await store.save_file("a/b.md", "v2", sha=old_sha)

            assert result.success
            matching = [n for n in store.page.notes if n.path == "a/b.md"]
            assert len(matching) == 1
            assert matching[0].sha == blob_sha("v2")
            assert matching[0].content == "v2"

            node = store.locate("a/b.md")
            assert node is not None
            assert node.content == "v2"
            assert node.cached is True
            assert node.sha == blob_sha("v2")

    async def test_save_new_file_keeps_siblings(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_directory("a")
            await store.save_file("a/new.md", "hello")
            a = store.locate("a")
            assert a is not None
            assert [c.path for c in a.children or []] == ["a/b.md", "a/c.md", "a/new.md"]
            assert a.cached is True

    async def test_save_creates_uncached_ancestors(self, store: NoteStoreAsync) -> None:
        await store.save_file("deep/er/note.md", "x")
        deep = store.locate("deep")
        assert deep is not None and deep.cached is False
        node = store.locate("deep/er/note.md")
        assert node is not None and node.cached

    async def test_save_always_reaches_remote(
        self, store: NoteStoreAsync, memory_client: MemoryRemoteStoreClient
    ) -> None:
        await store.save_file("x.md", "1")
        sha = store.locate("x.md").sha  # type: ignore[union-attr]
        await store.save_file("x.md", "2", sha=sha)
        assert [c for c in memory_client.calls if c[0] == "save_file"] == [("save_file", "x.md")] * 2

    async def test_save_conflict_leaves_state(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            page_before = store.page
            tree_before = store.tree
            result = await store.save_file("a/b.md", "clobber", sha="stale")

            assert result.success is False
            assert store.page is page_before
            assert store.tree is tree_before
            assert store.status[OperationKind.SAVE_FILE] is OperationStatus.FAIL
            assert client.files["a/b.md"] == "first"


# ------------------------------------------------------------------
# delete_file
# ------------------------------------------------------------------


class TestDeleteFile:
    async def test_delete_removes_from_page_and_tree(self) -> None:
        client = MemoryRemoteStoreClient({"a/b.md": "body"})
        async with NoteStoreAsync(client) as store:
            await store.search()
            result = await store.delete_file("a/b.md", sha=blob_sha("body"))

            assert result.success
            assert all(n.path != "a/b.md" for n in store.page.notes)
            assert store.locate("a/b.md") is None
            a = store.locate("a")
            assert a is not None
            assert a.children == []

    async def test_delete_node(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            node = store.locate("top.md")
            assert node is not None
            result = await store.delete_node(node)
            assert result.success
            assert "top.md" not in client.files
            assert store.locate("top.md") is None

    async def test_delete_failure_leaves_state(self) -> None:
        client = FailingClient(FILES, {"delete_file"})
        async with NoteStoreAsync(client) as store:
            await store.list_tree()
            notes_before = list(store.page.notes)
            result = await store.delete_file("a/b.md")

            assert result.success is False
            assert store.page.notes == notes_before
            assert store.locate("a/b.md") is not None
            assert store.status[OperationKind.DELETE_FILE] is OperationStatus.FAIL

    async def test_delete_unknown_locally(self, store: NoteStoreAsync) -> None:
        result = await store.delete_file("README.md")
        assert result.success
        assert store.locate("README.md") is None


# ------------------------------------------------------------------
# Concurrency
# ------------------------------------------------------------------


class TestConcurrency:
    async def test_concurrent_operations_both_apply(self) -> None:
        client = MemoryRemoteStoreClient(FILES)
        async with NoteStoreAsync(client) as store:
            await asyncio.gather(store.get_file("top.md"), store.list_directory("a"))
            top = store.locate("top.md")
            assert top is not None and top.cached
            a = store.locate("a")
            assert a is not None and a.cached
            assert set(store.status.values()) == {OperationStatus.IDLE}

    async def test_duplicate_gated_requests_both_dispatch(self) -> None:
        client = GatedClient(FILES)
        async with NoteStoreAsync(client) as store:
            first = asyncio.create_task(store.get_file("top.md"))
            second = asyncio.create_task(store.get_file("top.md"))
            await client.waiting.wait()
            client.release.set()
            results = await asyncio.gather(first, second)
            assert not any(r.skipped for r in results)
            assert store.locate("top.md") is not None


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------


class TestLifecycle:
    async def test_closed_store_rejects_operations(self) -> None:
        store = NoteStoreAsync(MemoryRemoteStoreClient(FILES))
        await store.close()
        await store.close()
        assert store.closed
        with pytest.raises(StoreClosedError):
            await store.get_file("top.md")
        with pytest.raises(StoreClosedError):
            await store.search()
