"""
Note Repository

Data access layer for Note entities. Every operation is scoped by the
owner id supplied by the caller. Semantic ranking is delegated to the
``match_notes`` SQL function created by the migrations.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import bindparam, delete, or_, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.models import Note
from second_brain.repositories.base import BaseRepository
from second_brain.schemas.notes import SearchResult, TagCount

logger = logging.getLogger(__name__)

PAGE_SIZE = 20
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 500
# Keeps OFFSET well inside int64
MAX_PAGE = 1_000_000
TAG_SEARCH_LIMIT = 50
TAG_SAMPLE_LIMIT = 1000
TOP_TAGS = 30

# Server-side ranking: exact tag hits (1.0) first, then cosine similarity.
MATCH_NOTES_SQL = text(
    "SELECT * FROM match_notes("
    ":query_text, CAST(:query_embedding AS vector), :match_threshold, :match_count, :p_user_id)"
).bindparams(bindparam("query_embedding", type_=Vector()))


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the query is matched literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def tally_tags(tag_lists: Iterable[Sequence[str] | None], top: int = TOP_TAGS) -> list[TagCount]:
    """
    Count tag occurrences across notes.

    Tags are trimmed and blanks skipped. Ties keep first-seen order
    (newest note first, given newest-first input).
    """
    counter: Counter[str] = Counter()
    for tags in tag_lists:
        if not tags:
            continue
        for raw in tags:
            tag = str(raw).strip()
            if tag:
                counter[tag] += 1
    return [TagCount(tag=tag, count=count) for tag, count in counter.most_common(top)]


class NoteRepository(BaseRepository[Note]):
    """
    Repository for owner-scoped Note persistence and retrieval.

    Inherits create/count from BaseRepository and adds:
        - insert / list_notes / delete: the note lifecycle
        - similarity_search: ``match_notes`` RPC (tag + vector hybrid)
        - tag_filter / keyword_filter: exact and substring retrieval
        - count_tags: tag frequency over recent notes
    """

    def __init__(self) -> None:
        super().__init__(Note)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def insert(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        fields: dict[str, Any],
    ) -> Note:
        """Persist a fully enriched note for ``owner_id``."""
        note = await self.create(session, {**fields, "user_id": owner_id})
        logger.info("Inserted note %s for owner %s", note.id, owner_id)
        return note

    async def list_notes(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[Sequence[Note], int | None]:
        """
        List an owner's notes, newest first.

        Two addressing modes:
            - page (1-based, fixed PAGE_SIZE): returns the owner's total
              count for pagination controls. Takes precedence.
            - limit (capped at MAX_LIST_LIMIT): no total count.

        Returns:
            Tuple of (notes, total). ``total`` is None in limit mode.
        """
        stmt = (
            select(Note)
            .where(Note.user_id == owner_id)
            .order_by(Note.created_at.desc(), Note.id)
        )

        if page is not None:
            total = await self.count(session, Note.user_id == owner_id)
            stmt = stmt.offset((page - 1) * PAGE_SIZE).limit(PAGE_SIZE)
        else:
            total = None
            effective = min(limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
            stmt = stmt.limit(effective)

        async with self._guard(session, "list"):
            result = await session.execute(stmt)
        return result.scalars().all(), total

    async def delete(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> bool:
        """
        Delete a note if and only if it belongs to ``owner_id``.

        Returns:
            True if a row was removed, False if the id is unknown or
            belongs to someone else (both are no-ops).
        """
        stmt = delete(Note).where(Note.id == note_id, Note.user_id == owner_id)
        async with self._guard(session, "delete"):
            result = await session.execute(stmt)
            await session.commit()
        removed = bool(result.rowcount)
        if not removed:
            logger.info("Delete of note %s by %s matched no row", note_id, owner_id)
        return removed

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def similarity_search(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        query_text: str,
        query_embedding: list[float],
        threshold: float,
        count: int,
    ) -> list[SearchResult]:
        """
        Rank an owner's notes against a query via ``match_notes``.

        Exact tag matches score 1.0 and come first; remaining hits are
        ordered by cosine similarity. Returns [] when nothing clears
        ``threshold``.
        """
        params = {
            "query_text": query_text,
            "query_embedding": query_embedding,
            "match_threshold": threshold,
            "match_count": count,
            "p_user_id": owner_id,
        }
        async with self._guard(session, "match_notes"):
            result = await session.execute(MATCH_NOTES_SQL, params)
        rows = result.mappings().all()
        return [self._row_to_result(row) for row in rows]

    async def tag_filter(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        tag: str,
        limit: int = TAG_SEARCH_LIMIT,
    ) -> list[SearchResult]:
        """Notes whose tag set contains ``tag`` exactly (case-sensitive)."""
        stmt = (
            select(Note)
            .where(Note.user_id == owner_id, Note.tags.contains([tag]))
            .order_by(Note.created_at.desc())
            .limit(limit)
        )
        async with self._guard(session, "tag_filter"):
            result = await session.execute(stmt)
        return [
            SearchResult.model_validate(note).model_copy(
                update={"similarity": 1.0, "match_type": "tag"}
            )
            for note in result.scalars().all()
        ]

    async def keyword_filter(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        query: str,
        limit: int,
    ) -> list[SearchResult]:
        """Case-insensitive substring match on content, summary or mental model."""
        pattern = f"%{escape_like(query)}%"
        stmt = (
            select(Note)
            .where(
                Note.user_id == owner_id,
                or_(
                    Note.content.ilike(pattern, escape="\\"),
                    Note.summary.ilike(pattern, escape="\\"),
                    Note.mental_model.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(Note.created_at.desc())
            .limit(limit)
        )
        async with self._guard(session, "keyword_filter"):
            result = await session.execute(stmt)
        return [
            SearchResult.model_validate(note).model_copy(update={"match_type": "keyword"})
            for note in result.scalars().all()
        ]

    async def count_tags(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID | None,
        sample_limit: int = TAG_SAMPLE_LIMIT,
        top: int = TOP_TAGS,
    ) -> list[TagCount]:
        """
        Tag frequencies over the most recent ``sample_limit`` notes.

        Aggregation happens in Python, which is fine at personal scale.
        Pass ``owner_id=None`` to aggregate across all owners.
        """
        stmt = select(Note.tags).order_by(Note.created_at.desc()).limit(sample_limit)
        if owner_id is not None:
            stmt = stmt.where(Note.user_id == owner_id)
        async with self._guard(session, "count_tags"):
            result = await session.execute(stmt)
        return tally_tags(result.scalars().all(), top)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_result(row: Any) -> SearchResult:
        data = dict(row)
        if not data.get("match_type"):
            data["match_type"] = "vector"
        data["tags"] = data.get("tags") or []
        return SearchResult.model_validate(data)


# Module-level instance for convenience imports
note_repository = NoteRepository()
