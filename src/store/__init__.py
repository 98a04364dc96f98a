"""
Document stores for the unified progress document.

- DocumentStore: async get/set protocol with optional revision checks
- InMemoryDocumentStore: dictionary-backed, for tests and embedding
- SqlDocumentStore: SQLAlchemy-backed (SQLite or PostgreSQL)
"""

from src.store.base import DocumentStore, check_revision, stored_revision
from src.store.memory import InMemoryDocumentStore
from src.store.sql import SqlDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "check_revision",
    "stored_revision",
]
