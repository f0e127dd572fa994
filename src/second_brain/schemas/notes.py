"""
Note Schemas

Pydantic models for Note API request/response validation.
Separates concerns: NoteCreate (input), NoteRead (output),
SearchResult (transient ranked projection).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MatchType = Literal["tag", "keyword", "vector"]


class NoteCreate(BaseModel):
    """
    Request schema for POST /notes.

    Emptiness is checked by the ingestion pipeline (400), not here (422),
    so that blank submissions are reported as a validation failure.
    """

    content: str = Field(..., description="Free-text reflection to capture")


class NoteRead(BaseModel):
    """Full Note representation. The embedding is never exposed."""

    id: UUID
    content: str
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    summary: str | None = None
    mental_model: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)  # Enables ORM model conversion


class SearchResult(NoteRead):
    """
    A note as returned by a search strategy.

    Attributes:
        similarity: 1.0 for exact tag hits, cosine similarity for vector
            hits, None for keyword hits (not computed).
        match_type: Which strategy produced the hit.
    """

    similarity: float | None = None
    match_type: MatchType = "vector"


class NoteListResponse(BaseModel):
    """Response for GET /notes. ``total`` is only set in page mode."""

    notes: list[NoteRead]
    total: int | None = None
    page: int | None = None


class SearchRequest(BaseModel):
    """Request body for POST /search."""

    query: str = Field(default="", description="Search text or literal tag")
    # Unknown modes are rejected by the search service with a 400.
    mode: str = Field(default="hybrid", description="'tag' or 'hybrid'")


class DeleteResponse(BaseModel):
    """Response for DELETE /notes."""

    ok: bool = True


class SearchResponse(BaseModel):
    """Ranked search hits."""

    notes: list[SearchResult] = Field(default_factory=list)


class TagCount(BaseModel):
    """Frequency of one tag across recent notes."""

    tag: str
    count: int = Field(ge=1)


class TagListResponse(BaseModel):
    """Response for GET /tags."""

    tags: list[TagCount] = Field(default_factory=list)
