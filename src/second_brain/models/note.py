"""
Note Model

Core entity for storing enriched notes with vector embeddings for
semantic search. Uses pgvector extension for similarity queries.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Text, Uuid
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from second_brain.models.base import Base

# text-embedding-3-small output size
EMBEDDING_DIMENSION: int = 1536


class Note(Base):
    """
    Note entity with enrichment metadata and embedding.

    Notes are immutable once written: there is no update path, only
    create, read and delete, always scoped by ``user_id``.

    Attributes:
        id: UUID primary key (generated Python-side).
        user_id: Owner identity, indexed.
        content: Original free text as submitted.
        category: Enrichment category (nullable).
        tags: Short searchable labels, GIN-indexed for containment queries.
        summary: Enrichment summary, markdown-flavored (nullable).
        mental_model: Named conceptual framework (nullable).
        embedding: 1536-dim vector of content + summary (nullable for
            legacy rows only).
        created_at: Insertion timestamp (server-side default), listing key.
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(Text),
        nullable=False,
        default=list,
        server_default="{}",
    )
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    mental_model: Mapped[str | None] = mapped_column(Text, nullable=True)
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),  # Database-side default, not Python-side
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, content='{self.content[:20]}...')>"
