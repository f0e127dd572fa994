"""
Search Orchestrator

Selects and runs retrieval strategies for a query:

    tag     -> [tag_exact]
    hybrid  -> [vector_hybrid, keyword_fallback]

The fallback policy lives in ``SearchService.plan`` as data. The
dispatcher walks the plan: a non-final strategy that fails or finds
nothing is skipped, so keyword substring search is always the
guaranteed-available baseline. Degradation is silent to the caller and
logged at WARNING.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.core.config import AIClientConfig
from second_brain.core.exceptions import EmbeddingError, PersistenceError, ValidationError
from second_brain.repositories.notes import TAG_SEARCH_LIMIT, NoteRepository
from second_brain.schemas.notes import SearchResult
from second_brain.services.embeddings import EmbeddingClient

logger = logging.getLogger(__name__)

SEARCH_MODES = ("tag", "hybrid")

StrategyFn = Callable[[AsyncSession, uuid.UUID, str], Awaitable[list[SearchResult]]]


@dataclass(frozen=True)
class Strategy:
    """A named retrieval step."""

    name: str
    run: StrategyFn


class SearchService:
    """
    Stateless, request-scoped search over one owner's notes.

    Usage::

        service = SearchService(repository, embedder, config)
        hits = await service.search(session, owner_id, "pricing", mode="hybrid")
    """

    def __init__(
        self,
        repository: NoteRepository,
        embedder: EmbeddingClient,
        config: AIClientConfig | None = None,
    ) -> None:
        self._repository = repository
        self._embedder = embedder
        self._config = config or AIClientConfig.from_settings()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(self, mode: str) -> list[Strategy]:
        """Ordered strategies for ``mode``."""
        if mode == "tag":
            return [Strategy("tag", self.tag_exact)]
        if mode == "hybrid":
            return [
                Strategy("vector", self.vector_hybrid),
                Strategy("keyword", self.keyword_fallback),
            ]
        raise ValidationError(f"Unknown search mode '{mode}'. Use one of: {', '.join(SEARCH_MODES)}")

    async def search(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        query: str,
        mode: str = "hybrid",
    ) -> list[SearchResult]:
        """
        Run the strategy plan for ``mode`` and return ranked hits.

        Empty or whitespace queries return [] without touching any
        collaborator. Only the final strategy's errors reach the caller.
        """
        query = (query or "").strip()
        strategies = self.plan(mode)
        if not query:
            return []
        return await self._dispatch(session, owner_id, query, strategies)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def tag_exact(
        self, session: AsyncSession, owner_id: uuid.UUID, query: str
    ) -> list[SearchResult]:
        """Literal tag containment. Every hit scores 1.0."""
        return await self._repository.tag_filter(session, owner_id, query, TAG_SEARCH_LIMIT)

    async def vector_hybrid(
        self, session: AsyncSession, owner_id: uuid.UUID, query: str
    ) -> list[SearchResult]:
        """Embed the query and let the store interleave tag and vector hits."""
        query_embedding = await self._embedder.embed(query)
        return await self._repository.similarity_search(
            session,
            owner_id,
            query,
            query_embedding,
            threshold=self._config.match_threshold,
            count=self._config.match_count,
        )

    async def keyword_fallback(
        self, session: AsyncSession, owner_id: uuid.UUID, query: str
    ) -> list[SearchResult]:
        """Case-insensitive substring match, newest first."""
        return await self._repository.keyword_filter(
            session, owner_id, query, self._config.match_count
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _dispatch(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        query: str,
        strategies: list[Strategy],
    ) -> list[SearchResult]:
        last = len(strategies) - 1
        for index, strategy in enumerate(strategies):
            if index == last:
                hits = await strategy.run(session, owner_id, query)
                logger.info(
                    "Search via %s: %d hits (owner=%s, query_length=%d)",
                    strategy.name,
                    len(hits),
                    owner_id,
                    len(query),
                )
                return hits

            try:
                hits = await strategy.run(session, owner_id, query)
            except (EmbeddingError, PersistenceError) as e:
                logger.warning(
                    "Search strategy %s failed, falling back (owner=%s): %s",
                    strategy.name,
                    owner_id,
                    e.detail if isinstance(e, PersistenceError) else e,
                )
                continue

            if hits:
                logger.info(
                    "Search via %s: %d hits (owner=%s, query_length=%d)",
                    strategy.name,
                    len(hits),
                    owner_id,
                    len(query),
                )
                return hits
            logger.info("Search strategy %s returned nothing, falling back", strategy.name)

        return []
