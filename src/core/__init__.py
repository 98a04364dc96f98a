"""
Core Module - Shared error and result types.

Components:
- errors: ExamPrepError hierarchy raised by the document stores
- result: Result wrapper returned by ProgressService operations
"""

from src.core.errors import (
    DocumentStoreError,
    ExamPrepError,
    ProgressServiceError,
    RevisionConflictError,
)
from src.core.result import Result

__all__ = [
    "DocumentStoreError",
    "ExamPrepError",
    "ProgressServiceError",
    "Result",
    "RevisionConflictError",
]
