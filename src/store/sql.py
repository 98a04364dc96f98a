"""
SQLAlchemy-backed document store.

Documents are kept in the ``documents`` table (see src.db.models.document).
Blocking database calls run in a worker thread so the async contract of
DocumentStore holds.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.errors import DocumentStoreError, RevisionConflictError
from src.db.database import get_engine, get_session_factory, init_db
from src.db.models.document import StoredDocument
from src.store.base import stored_revision


class SqlDocumentStore:
    """DocumentStore over a relational database (SQLite or PostgreSQL)."""

    def __init__(self, engine: Engine | None = None, create_tables: bool = True):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine (defaults to the one configured by settings)
            create_tables: Create the documents table if it does not exist
        """
        self.engine = engine or get_engine()
        self._session_factory = get_session_factory(self.engine)
        if create_tables:
            init_db(self.engine)

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._get_document, collection, doc_id)

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_revision: int | None = None,
    ) -> None:
        await asyncio.to_thread(self._set_document, collection, doc_id, data, expected_revision)

    def _get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            with self._session_factory() as session:
                row = session.get(StoredDocument, (collection, doc_id))
                return dict(row.data) if row is not None else None
        except SQLAlchemyError as exc:
            raise DocumentStoreError(
                f"Failed to read {collection}/{doc_id}: {exc}", collection, doc_id
            ) from exc

    def _set_document(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_revision: int | None,
    ) -> None:
        revision = stored_revision(data)
        now = datetime.now()

        try:
            with self._session_factory.begin() as session:
                if expected_revision is None:
                    session.merge(
                        StoredDocument(
                            collection=collection,
                            doc_id=doc_id,
                            data=data,
                            revision=revision,
                            updated_at=now,
                        )
                    )
                    return

                result = session.execute(
                    update(StoredDocument)
                    .where(
                        StoredDocument.collection == collection,
                        StoredDocument.doc_id == doc_id,
                        StoredDocument.revision == expected_revision,
                    )
                    .values(data=data, revision=revision, updated_at=now)
                )
                if result.rowcount == 1:
                    return

                existing = session.get(StoredDocument, (collection, doc_id))
                if existing is not None or expected_revision != 0:
                    actual = existing.revision if existing is not None else 0
                    raise RevisionConflictError(collection, doc_id, expected_revision, actual)

                session.add(
                    StoredDocument(
                        collection=collection,
                        doc_id=doc_id,
                        data=data,
                        revision=revision,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError as exc:
            # Another writer inserted the document first
            logger.warning("Concurrent insert of {}/{}", collection, doc_id)
            raise RevisionConflictError(collection, doc_id, expected_revision or 0, None) from exc
        except SQLAlchemyError as exc:
            raise DocumentStoreError(
                f"Failed to write {collection}/{doc_id}: {exc}", collection, doc_id
            ) from exc
