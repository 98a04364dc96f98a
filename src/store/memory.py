"""
In-memory document store.

Documents are deep-copied on the way in and out so callers never share
state with the store, matching the semantics of a remote document store.
"""

from __future__ import annotations

import copy
from typing import Any

from loguru import logger

from src.store.base import check_revision


class InMemoryDocumentStore:
    """Dictionary-backed DocumentStore for tests and embedding."""

    def __init__(self, documents: dict[tuple[str, str], dict[str, Any]] | None = None):
        self._documents: dict[tuple[str, str], dict[str, Any]] = copy.deepcopy(documents or {})
        self.writes = 0

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = self._documents.get((collection, doc_id))
        return copy.deepcopy(document) if document is not None else None

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_revision: int | None = None,
    ) -> None:
        check_revision(collection, doc_id, self._documents.get((collection, doc_id)), expected_revision)
        self._documents[(collection, doc_id)] = copy.deepcopy(data)
        self.writes += 1
        logger.debug("Stored {}/{} (write #{})", collection, doc_id, self.writes)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._documents
