"""
Pytest Configuration and Fixtures

Shared fixtures: environment defaults, AI client configuration, and an
in-memory NoteRepository so services and routes run without Postgres.
Live fixtures (``api_client``) need the running stack.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults, set before any second_brain imports.
#
# 1. Load .env first so that local credentials are available.
# 2. setdefault fills in anything still missing (CI runners, fresh clones)
#    so that pydantic Settings validation doesn't crash.
# ---------------------------------------------------------------------------
load_dotenv()

_test_env = {
    "POSTGRES_USER": "brain",
    "POSTGRES_PASSWORD": "brain_password",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "brain_db",
    "AI_API_KEY": "mock",
    "JWT_SECRET": "test-secret",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
import math  # noqa: E402
import time  # noqa: E402
import uuid  # noqa: E402
from collections.abc import Generator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402
from typing import Any  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from second_brain.core.config import AIClientConfig  # noqa: E402
from second_brain.core.security import create_access_token  # noqa: E402
from second_brain.models import Note  # noqa: E402
from second_brain.repositories.notes import (  # noqa: E402
    DEFAULT_LIST_LIMIT,
    MAX_LIST_LIMIT,
    PAGE_SIZE,
    TAG_SAMPLE_LIMIT,
    TOP_TAGS,
    tally_tags,
)
from second_brain.schemas.notes import SearchResult, TagCount  # noqa: E402

BASE_URL = "http://localhost:8000"


def make_config(**overrides: Any) -> AIClientConfig:
    """AIClientConfig with test-friendly defaults."""
    values: dict[str, Any] = {
        "base_url": "https://ai.test/api/v1",
        "api_key": "sk-test",
        "embedding_model": "openai/text-embedding-3-small",
        "embedding_dimension": 1536,
        "chat_model": "test/chat-model",
        "chat_temperature": 0.3,
        "chat_max_tokens": 512,
        "request_timeout_ms": 2000,
        "embedding_timeout_ms": 1000,
        "match_threshold": 0.3,
        "match_count": 50,
    }
    values.update(overrides)
    return AIClientConfig(**values)


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=False))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryNoteRepository:
    """
    Dict-backed stand-in for NoteRepository.

    Mirrors the owner scoping and ordering rules of the SQL implementation,
    including the tag-first ranking of ``match_notes``. Set ``fail_on`` to
    a method name and an exception to make that method raise.
    """

    def __init__(self) -> None:
        self.notes: list[Note] = []
        self.failures: dict[str, Exception] = {}
        self._clock = datetime(2026, 1, 1, tzinfo=UTC)

    def fail_on(self, method: str, error: Exception) -> None:
        self.failures[method] = error

    def _maybe_fail(self, method: str) -> None:
        if method in self.failures:
            raise self.failures[method]

    def _owned(self, owner_id: uuid.UUID) -> list[Note]:
        owned = [note for note in self.notes if note.user_id == owner_id]
        return sorted(owned, key=lambda note: note.created_at, reverse=True)

    async def insert(self, session, owner_id, fields):
        self._maybe_fail("insert")
        self._clock += timedelta(seconds=1)
        note = Note(id=uuid.uuid4(), user_id=owner_id, created_at=self._clock, **fields)
        self.notes.append(note)
        return note

    async def list_notes(self, session, owner_id, page=None, limit=None):
        self._maybe_fail("list_notes")
        owned = self._owned(owner_id)
        if page is not None:
            start = (page - 1) * PAGE_SIZE
            return owned[start : start + PAGE_SIZE], len(owned)
        return owned[: min(limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)], None

    async def delete(self, session, owner_id, note_id):
        self._maybe_fail("delete")
        before = len(self.notes)
        self.notes = [n for n in self.notes if not (n.id == note_id and n.user_id == owner_id)]
        return len(self.notes) < before

    async def similarity_search(self, session, owner_id, query_text, query_embedding, threshold, count):
        self._maybe_fail("similarity_search")
        ranked: list[tuple[int, float, datetime, SearchResult]] = []
        for note in self._owned(owner_id):
            if query_text in (note.tags or []):
                score, match_type = 1.0, "tag"
            elif note.embedding is not None:
                score, match_type = _cosine(list(note.embedding), query_embedding), "vector"
                if score <= threshold:
                    continue
            else:
                continue
            hit = SearchResult.model_validate(note).model_copy(
                update={"similarity": score, "match_type": match_type}
            )
            ranked.append((match_type == "tag", score, note.created_at, hit))
        ranked.sort(key=lambda row: (row[0], row[1], row[2]), reverse=True)
        return [row[3] for row in ranked[:count]]

    async def tag_filter(self, session, owner_id, tag, limit=50):
        self._maybe_fail("tag_filter")
        return [
            SearchResult.model_validate(note).model_copy(update={"similarity": 1.0, "match_type": "tag"})
            for note in self._owned(owner_id)
            if tag in (note.tags or [])
        ][:limit]

    async def keyword_filter(self, session, owner_id, query, limit):
        self._maybe_fail("keyword_filter")
        needle = query.casefold()
        hits = []
        for note in self._owned(owner_id):
            fields = (note.content, note.summary or "", note.mental_model or "")
            if any(needle in field.casefold() for field in fields):
                hits.append(
                    SearchResult.model_validate(note).model_copy(update={"match_type": "keyword"})
                )
        return hits[:limit]

    async def count_tags(
        self, session, owner_id, sample_limit=TAG_SAMPLE_LIMIT, top=TOP_TAGS
    ) -> list[TagCount]:
        self._maybe_fail("count_tags")
        if owner_id is None:
            notes = sorted(self.notes, key=lambda n: n.created_at, reverse=True)
        else:
            notes = self._owned(owner_id)
        return tally_tags([note.tags for note in notes[:sample_limit]], top)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ai_config() -> AIClientConfig:
    return make_config()


@pytest.fixture
def config_factory():
    """Build an AIClientConfig with overrides: ``config_factory(api_key=None)``."""
    return make_config


@pytest.fixture
def repository() -> InMemoryNoteRepository:
    return InMemoryNoteRepository()


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_headers(owner_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(owner_id)}"}


# ---------------------------------------------------------------------------
# Live fixtures (running stack)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def wait_for_api():
    """
    Block until the API is ready or timeout expires.

    Polls /health with 1s intervals for up to 30s.
    """
    url = f"{BASE_URL}/health"
    timeout = 30
    start = time.time()

    print("\n[Test] Waiting for API...")
    while time.time() - start < timeout:
        try:
            res = httpx.get(url, timeout=1.0)
            if res.status_code == 200:
                print("API Ready")
                return
        except httpx.RequestError:
            time.sleep(1)

    pytest.fail("API unreachable. Is the stack running?")


@pytest.fixture(scope="session")
def api_client(wait_for_api) -> Generator[httpx.Client, None, None]:
    """HTTP client against /api/v1 of the running stack (no auth header)."""
    with httpx.Client(base_url=f"{BASE_URL}/api/v1", timeout=120.0) as client:
        yield client
