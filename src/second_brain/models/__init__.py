"""Models package - re-exports all models for convenient imports."""

from second_brain.models.base import Base
from second_brain.models.note import EMBEDDING_DIMENSION, Note

__all__ = [
    "Base",
    "EMBEDDING_DIMENSION",
    "Note",
]
