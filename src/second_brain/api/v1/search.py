"""
Search API Router

POST /search: body-based equivalent of GET /notes/search.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.api.deps import get_current_owner, get_search_service
from second_brain.core.database import get_db
from second_brain.schemas.notes import SearchRequest, SearchResponse
from second_brain.services.search import SearchService

router = APIRouter()


@router.post("", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    db: AsyncSession = Depends(get_db),
    owner_id: uuid.UUID = Depends(get_current_owner),
    service: SearchService = Depends(get_search_service),
):
    """
    Tag or hybrid search.

    Hybrid mode degrades to keyword matching when the embedding service
    or vector ranking is unavailable; the caller always gets 200.
    """
    hits = await service.search(db, owner_id, request.query, request.mode)
    return SearchResponse(notes=hits)
