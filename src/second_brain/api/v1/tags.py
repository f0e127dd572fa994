"""
Tags API Router

GET /tags: the caller's most frequent tags over recent notes.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.api.deps import get_current_owner, get_repository
from second_brain.core.database import get_db
from second_brain.repositories.notes import NoteRepository
from second_brain.schemas.notes import TagListResponse

router = APIRouter()


@router.get("", response_model=TagListResponse)
async def list_tags(
    db: AsyncSession = Depends(get_db),
    owner_id: uuid.UUID = Depends(get_current_owner),
    repository: NoteRepository = Depends(get_repository),
):
    return TagListResponse(tags=await repository.count_tags(db, owner_id))
