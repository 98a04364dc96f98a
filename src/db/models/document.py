"""
Document table model.

One row per (collection, doc_id). The whole document lives in a JSON
column; its revision is mirrored into an indexed column so conditional
writes can be expressed as a single UPDATE ... WHERE revision = :expected.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class StoredDocument(Base):
    """A stored JSON document."""

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(255), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(default=func.now())
    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<StoredDocument {self.collection}/{self.doc_id} rev={self.revision}>"
