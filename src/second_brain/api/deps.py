"""
API Dependencies

FastAPI providers for caller identity and the per-request service graph.
Tests swap any of these via ``app.dependency_overrides``.
"""

from __future__ import annotations

import uuid

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from second_brain.core.config import AIClientConfig
from second_brain.core.exceptions import AuthError
from second_brain.core.security import resolve_owner_id
from second_brain.repositories.notes import NoteRepository, note_repository
from second_brain.services.embeddings import EmbeddingClient
from second_brain.services.enrichment import EnrichmentClient
from second_brain.services.ingestion import IngestionPipeline
from second_brain.services.search import SearchService

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_owner(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> uuid.UUID:
    """Resolve the caller's owner id from the bearer token or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise AuthError()
    return resolve_owner_id(credentials.credentials)


def get_client_config() -> AIClientConfig:
    return AIClientConfig.from_settings()


def get_repository() -> NoteRepository:
    return note_repository


def get_pipeline(
    repository: NoteRepository = Depends(get_repository),
    config: AIClientConfig = Depends(get_client_config),
) -> IngestionPipeline:
    """FastAPI dependency: ingestion pipeline wired with fresh AI clients."""
    return IngestionPipeline(repository, EnrichmentClient(config), EmbeddingClient(config))


def get_search_service(
    repository: NoteRepository = Depends(get_repository),
    config: AIClientConfig = Depends(get_client_config),
) -> SearchService:
    """FastAPI dependency: search orchestrator for one request."""
    return SearchService(repository, EmbeddingClient(config), config)
