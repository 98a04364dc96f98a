"""
Exception hierarchy for the exam strategy engine.

Stores raise these; the progress service converts them into failed Results
so callers never see a raw storage exception.
"""

from __future__ import annotations


class ExamPrepError(Exception):
    """Base class for all engine errors."""

    pass


class DocumentStoreError(ExamPrepError):
    """Raised when a document read or write fails."""

    def __init__(self, message: str, collection: str | None = None, doc_id: str | None = None):
        super().__init__(message)
        self.collection = collection
        self.doc_id = doc_id


class RevisionConflictError(DocumentStoreError):
    """Raised when a revision-checked write finds a newer document."""

    def __init__(
        self,
        collection: str,
        doc_id: str,
        expected_revision: int,
        actual_revision: int | None,
    ):
        super().__init__(
            f"Revision conflict on {collection}/{doc_id}: "
            f"expected {expected_revision}, found {actual_revision}",
            collection=collection,
            doc_id=doc_id,
        )
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


class ProgressServiceError(ExamPrepError):
    """Failure reported by ProgressService, wrapping the underlying cause."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.message = message
        self.cause = cause

    @property
    def is_conflict(self) -> bool:
        """True when the failure was a concurrent modification."""
        return isinstance(self.cause, RevisionConflictError)
