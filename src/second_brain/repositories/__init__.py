"""Repositories package."""

from second_brain.repositories.base import BaseRepository
from second_brain.repositories.notes import NoteRepository, note_repository

__all__ = [
    "BaseRepository",
    "NoteRepository",
    "note_repository",
]
