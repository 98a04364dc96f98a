"""
Unit tests for InMemoryDocumentStore and revision checks.
"""

import pytest

from src.core.errors import RevisionConflictError
from src.store.base import check_revision, stored_revision
from src.store.memory import InMemoryDocumentStore


class TestStoredRevision:
    def test_missing_document_is_revision_zero(self):
        assert stored_revision(None) == 0

    def test_document_without_revision(self):
        assert stored_revision({"user_id": "u1"}) == 0

    def test_revision_field(self):
        assert stored_revision({"revision": 4}) == 4

    def test_unchecked_write_always_passes(self):
        check_revision("c", "d", {"revision": 9}, None)

    def test_mismatch_raises(self):
        with pytest.raises(RevisionConflictError) as exc_info:
            check_revision("users/u1/progress", "unified", {"revision": 3}, 2)

        assert exc_info.value.expected_revision == 2
        assert exc_info.value.actual_revision == 3
        assert "users/u1/progress/unified" in str(exc_info.value)


class TestInMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_missing_document(self):
        store = InMemoryDocumentStore()

        assert await store.get_document("users/u1/progress", "unified") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self):
        store = InMemoryDocumentStore()

        await store.set_document("c", "d", {"revision": 1, "value": 42})

        assert await store.get_document("c", "d") == {"revision": 1, "value": 42}
        assert ("c", "d") in store
        assert len(store) == 1
        assert store.writes == 1

    @pytest.mark.asyncio
    async def test_documents_are_copied(self):
        store = InMemoryDocumentStore()
        data = {"items": [1, 2]}
        await store.set_document("c", "d", data)

        data["items"].append(3)
        loaded = await store.get_document("c", "d")
        loaded["items"].append(4)

        assert await store.get_document("c", "d") == {"items": [1, 2]}

    @pytest.mark.asyncio
    async def test_first_checked_write_expects_zero(self):
        store = InMemoryDocumentStore()

        await store.set_document("c", "d", {"revision": 1}, expected_revision=0)

        with pytest.raises(RevisionConflictError):
            await store.set_document("c", "d", {"revision": 1}, expected_revision=0)

    @pytest.mark.asyncio
    async def test_stale_write_is_rejected(self):
        store = InMemoryDocumentStore({("c", "d"): {"revision": 2}})

        with pytest.raises(RevisionConflictError):
            await store.set_document("c", "d", {"revision": 2}, expected_revision=1)

        assert store.writes == 0
        await store.set_document("c", "d", {"revision": 3}, expected_revision=2)
        assert (await store.get_document("c", "d"))["revision"] == 3
