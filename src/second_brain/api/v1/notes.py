"""
Notes API Router

Owner-scoped note lifecycle and search over GET.

Endpoints:
    POST   /notes         Enrich, embed and store a note (201).
    GET    /notes         List notes, newest first (page or limit mode).
    DELETE /notes?id=     Delete one of the caller's notes.
    GET    /notes/search  Search via query string.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.api.deps import (
    get_current_owner,
    get_pipeline,
    get_repository,
    get_search_service,
)
from second_brain.core.database import get_db
from second_brain.core.exceptions import ValidationError
from second_brain.repositories.notes import MAX_LIST_LIMIT, MAX_PAGE, NoteRepository
from second_brain.schemas.notes import (
    DeleteResponse,
    NoteCreate,
    NoteListResponse,
    NoteRead,
    SearchResponse,
)
from second_brain.services.ingestion import IngestionPipeline
from second_brain.services.search import SearchService

logger = logging.getLogger(__name__)

router = APIRouter()


def _positive(value: str | None, name: str, maximum: int | None = None) -> int | None:
    """Parse an optional positive integer query parameter, bounded by ``maximum`` if given."""
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except ValueError as e:
        raise ValidationError(f"'{name}' must be a positive integer") from e
    if number < 1:
        raise ValidationError(f"'{name}' must be a positive integer")
    if maximum is not None and number > maximum:
        raise ValidationError(f"'{name}' must be at most {maximum}")
    return number


@router.post("", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note_in: NoteCreate,
    db: AsyncSession = Depends(get_db),
    owner_id: uuid.UUID = Depends(get_current_owner),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """
    Create a note.

    Enrichment and embedding run inline, so the response carries the
    final category, tags, summary and mental model.
    """
    return await pipeline.create_note(db, owner_id, note_in.content)


@router.get("", response_model=NoteListResponse)
async def list_notes(
    page: str | None = None,
    limit: str | None = None,
    db: AsyncSession = Depends(get_db),
    owner_id: uuid.UUID = Depends(get_current_owner),
    repository: NoteRepository = Depends(get_repository),
):
    """List the caller's notes. ``page`` takes precedence over ``limit``."""
    page_number = _positive(page, "page", MAX_PAGE)
    # Oversized limits are clamped, not rejected
    limit_number = _positive(limit, "limit")
    if limit_number is not None:
        limit_number = min(limit_number, MAX_LIST_LIMIT)
    notes, total = await repository.list_notes(db, owner_id, page=page_number, limit=limit_number)
    return NoteListResponse(
        notes=[NoteRead.model_validate(note) for note in notes],
        total=total,
        page=page_number,
    )


@router.delete("", response_model=DeleteResponse)
async def delete_note(
    id: str | None = None,  # noqa: A002
    db: AsyncSession = Depends(get_db),
    owner_id: uuid.UUID = Depends(get_current_owner),
    repository: NoteRepository = Depends(get_repository),
):
    """
    Delete a note by id.

    Unknown ids and other owners' notes are silent no-ops.
    """
    if not id:
        raise ValidationError("Missing note id")
    try:
        note_id = uuid.UUID(id)
    except ValueError as e:
        raise ValidationError("Invalid note id") from e
    await repository.delete(db, owner_id, note_id)
    return DeleteResponse()


@router.get("/search", response_model=SearchResponse)
async def search_notes(
    q: str = "",
    mode: str = "hybrid",
    db: AsyncSession = Depends(get_db),
    owner_id: uuid.UUID = Depends(get_current_owner),
    service: SearchService = Depends(get_search_service),
):
    """Search the caller's notes (``mode`` is ``tag`` or ``hybrid``)."""
    hits = await service.search(db, owner_id, q, mode)
    return SearchResponse(notes=hits)
