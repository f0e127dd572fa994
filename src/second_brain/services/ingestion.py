"""
Ingestion Pipeline

Turns raw note text into a stored, searchable record:

    content -> EnrichmentClient -> EmbeddingClient -> NoteRepository

The steps are strictly sequential: the embedding input includes the
enrichment summary. Failures propagate unchanged; nothing is retried and
no partially enriched note is ever stored.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.core.exceptions import EmbeddingError, EnrichmentError, ValidationError
from second_brain.models import Note
from second_brain.repositories.notes import NoteRepository
from second_brain.services.embeddings import EmbeddingClient
from second_brain.services.enrichment import EnrichmentClient

logger = logging.getLogger(__name__)


def embedding_input(content: str, summary: str) -> str:
    """Text the note's vector is computed from."""
    return f"{content}\n\nSummary: {summary}"


class IngestionPipeline:
    """
    Composes enrichment, embedding and persistence into ``create_note``.

    Usage::

        pipeline = IngestionPipeline(repository, enricher, embedder)
        note = await pipeline.create_note(session, owner_id, "I fear pricing my work")
    """

    def __init__(
        self,
        repository: NoteRepository,
        enricher: EnrichmentClient,
        embedder: EmbeddingClient,
    ) -> None:
        self._repository = repository
        self._enricher = enricher
        self._embedder = embedder

    async def create_note(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        content: Any,
    ) -> Note:
        """
        Enrich, embed and persist a new note.

        Args:
            session: Active async database session.
            owner_id: Identity of the creating user.
            content: Raw note text.

        Returns:
            The stored Note with ``id`` and ``created_at`` populated.

        Raises:
            ValidationError: Content missing, not a string, or blank.
            EnrichmentError: Analysis failed (502).
            EmbeddingError: Vector generation failed (502).
            PersistenceError: Insert failed (500).
        """
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Missing content")

        # --- Step 1: Enrich ---
        try:
            analysis = await self._enricher.analyze(content)
        except EnrichmentError as e:
            logger.error("Enrichment failed (owner=%s): %s", owner_id, e)
            raise

        # --- Step 2: Embed content + summary ---
        try:
            embedding = await self._embedder.embed(embedding_input(content, analysis.summary))
        except EmbeddingError as e:
            logger.error("Embedding failed (owner=%s): %s", owner_id, e)
            raise

        # --- Step 3: Persist ---
        note = await self._repository.insert(
            session,
            owner_id,
            {
                "content": content,
                "category": analysis.category,
                "tags": analysis.tags,
                "summary": analysis.summary,
                "mental_model": analysis.mental_model,
                "embedding": embedding,
            },
        )
        logger.info(
            "Created note %s (owner=%s, category=%s, tags=%d)",
            note.id,
            owner_id,
            analysis.category or "-",
            len(analysis.tags),
        )
        return note
