"""
Document store contract.

The progress service needs only whole-document reads and writes. Writes
may carry an expected revision; a store rejects the write with
RevisionConflictError when the stored document's revision differs
(a missing document counts as revision 0).
"""

from __future__ import annotations

from typing import Any, Protocol

from src.core.errors import RevisionConflictError

REVISION_FIELD = "revision"


class DocumentStore(Protocol):
    """Async whole-document store."""

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ...

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_revision: int | None = None,
    ) -> None:
        ...


def stored_revision(document: dict[str, Any] | None) -> int:
    """Revision of a stored document; missing documents are revision 0."""
    if document is None:
        return 0
    return int(document.get(REVISION_FIELD, 0) or 0)


def check_revision(
    collection: str,
    doc_id: str,
    current: dict[str, Any] | None,
    expected_revision: int | None,
) -> None:
    """Raise RevisionConflictError if a checked write would clobber a newer document."""
    if expected_revision is None:
        return
    actual = stored_revision(current)
    if actual != expected_revision:
        raise RevisionConflictError(collection, doc_id, expected_revision, actual)
