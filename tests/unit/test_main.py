"""
API Unit Tests

Routes, auth and error mapping through FastAPI's TestClient. The database
check is patched out and the service graph runs on the in-memory
repository with mocked AI clients.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from second_brain.api.deps import get_pipeline, get_repository, get_search_service
from second_brain.core.database import get_db
from second_brain.core.exceptions import EmbeddingError, EnrichmentError, PersistenceError
from second_brain.core.security import create_access_token
from second_brain.main import app
from second_brain.services.analysis_parser import NoteAnalysis
from second_brain.services.ingestion import IngestionPipeline
from second_brain.services.search import SearchService

API = "/api/v1"


async def _no_db():
    yield None


@pytest.fixture
def enricher():
    mock = AsyncMock()
    mock.analyze.return_value = NoteAnalysis(
        category="growth", tags=["#杠杆效应"], summary="Charge for outcomes", mental_model="Leverage"
    )
    return mock


@pytest.fixture
def embedder():
    mock = AsyncMock()
    mock.embed.return_value = [0.1, 0.2, 0.3]
    return mock


@pytest.fixture
def client(repository, enricher, embedder, ai_config):
    """
    TestClient with dependencies overridden.

    TestClient triggers the lifespan handler, so the DB check is mocked.
    """
    app.dependency_overrides[get_db] = _no_db
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_pipeline] = lambda: IngestionPipeline(repository, enricher, embedder)
    app.dependency_overrides[get_search_service] = lambda: SearchService(repository, embedder, ai_config)
    try:
        with patch("second_brain.main.wait_for_db", new_callable=AsyncMock) as mock_db:
            mock_db.return_value = True
            with TestClient(app) as test_client:
                yield test_client
    finally:
        app.dependency_overrides.clear()


def _create(client, headers, content):
    response = client.post(f"{API}/notes", json={"content": content}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_check(client):
    for path in ("/health", f"{API}/health"):
        response = client.get(path)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "second-brain"
        assert "ai_mode" in data


def test_startup_fails_without_database():
    with patch("second_brain.main.wait_for_db", new_callable=AsyncMock) as mock_db:
        mock_db.return_value = False
        with pytest.raises(RuntimeError, match="Database connection failed"):
            with TestClient(app):
                pass


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/notes"),
        ("post", "/notes"),
        ("delete", "/notes?id=x"),
        ("get", "/notes/search?q=x"),
        ("post", "/search"),
        ("get", "/tags"),
    ],
)
def test_routes_require_auth(client, method, path):
    response = client.request(method.upper(), f"{API}{path}", json={"content": "x", "query": "x"})

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required", "notes": []}


@pytest.mark.parametrize("header", ["Bearer not-a-token", "Basic dXNlcjpwYXNz", "Bearer "])
def test_bad_credentials_are_rejected(client, header):
    response = client.get(f"{API}/notes", headers={"Authorization": header})
    assert response.status_code == 401
    assert response.json()["notes"] == []


def test_create_note(client, auth_headers, owner_id, repository, embedder):
    data = _create(client, auth_headers, "I fear pricing my work")

    assert data["content"] == "I fear pricing my work"
    assert data["category"] == "growth"
    assert data["tags"] == ["#杠杆效应"]
    assert data["summary"] == "Charge for outcomes"
    assert data["mental_model"] == "Leverage"
    assert "embedding" not in data
    assert repository.notes[0].user_id == owner_id
    embedder.embed.assert_awaited_once_with("I fear pricing my work\n\nSummary: Charge for outcomes")


@pytest.mark.parametrize("body", [{"content": "   "}, {"content": ""}, {}, {"content": 42}])
def test_create_note_rejects_bad_content(client, auth_headers, enricher, repository, body):
    response = client.post(f"{API}/notes", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert "error" in response.json()
    enricher.analyze.assert_not_called()
    assert repository.notes == []


def test_enrichment_failure_is_bad_gateway(client, auth_headers, enricher, repository):
    enricher.analyze.side_effect = EnrichmentError("Analysis request timed out, please retry")

    response = client.post(f"{API}/notes", json={"content": "text"}, headers=auth_headers)

    assert response.status_code == 502
    assert response.json() == {"error": "Analysis request timed out, please retry"}
    assert repository.notes == []


def test_persistence_failure_hides_detail(client, auth_headers, repository):
    repository.fail_on("list_notes", PersistenceError('relation "notes" does not exist'))

    response = client.get(f"{API}/notes", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to access notes"}


def test_list_notes_page_and_limit(client, auth_headers):
    for i in range(3):
        _create(client, auth_headers, f"note {i}")

    paged = client.get(f"{API}/notes", params={"page": 1}, headers=auth_headers).json()
    assert paged["total"] == 3
    assert paged["page"] == 1
    assert [n["content"] for n in paged["notes"]] == ["note 2", "note 1", "note 0"]

    limited = client.get(f"{API}/notes", params={"limit": 2}, headers=auth_headers).json()
    assert [n["content"] for n in limited["notes"]] == ["note 2", "note 1"]
    assert limited["total"] is None

    default = client.get(f"{API}/notes", headers=auth_headers).json()
    assert len(default["notes"]) == 3


@pytest.mark.parametrize("params", [{"page": 0}, {"page": "abc"}, {"limit": -1}])
def test_list_notes_rejects_bad_paging(client, auth_headers, params):
    response = client.get(f"{API}/notes", params=params, headers=auth_headers)
    assert response.status_code == 400


def test_list_is_owner_scoped(client, auth_headers, other_owner_id):
    _create(client, auth_headers, "mine")
    other_headers = {"Authorization": f"Bearer {create_access_token(other_owner_id)}"}

    response = client.get(f"{API}/notes", params={"page": 1}, headers=other_headers)

    assert response.json()["notes"] == []
    assert response.json()["total"] == 0


def test_delete_note(client, auth_headers, repository, other_owner_id):
    note = _create(client, auth_headers, "to delete")
    other_headers = {"Authorization": f"Bearer {create_access_token(other_owner_id)}"}

    # Another owner's delete is a silent no-op
    response = client.delete(f"{API}/notes", params={"id": note["id"]}, headers=other_headers)
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert len(repository.notes) == 1

    response = client.delete(f"{API}/notes", params={"id": note["id"]}, headers=auth_headers)
    assert response.json() == {"ok": True}
    assert repository.notes == []


@pytest.mark.parametrize("params", [{}, {"id": ""}, {"id": "not-a-uuid"}])
def test_delete_requires_valid_id(client, auth_headers, params):
    response = client.delete(f"{API}/notes", params=params, headers=auth_headers)
    assert response.status_code == 400


def test_search_endpoints(client, auth_headers):
    _create(client, auth_headers, "I fear pricing my work")

    by_tag = client.get(
        f"{API}/notes/search", params={"q": "#杠杆效应", "mode": "tag"}, headers=auth_headers
    ).json()
    assert [(h["match_type"], h["similarity"]) for h in by_tag["notes"]] == [("tag", 1.0)]

    hybrid = client.post(f"{API}/search", json={"query": "#杠杆效应"}, headers=auth_headers).json()
    assert hybrid["notes"][0]["match_type"] == "tag"

    empty = client.post(f"{API}/search", json={"query": "  "}, headers=auth_headers).json()
    assert empty == {"notes": []}


def test_search_degrades_to_keyword(client, auth_headers, embedder):
    _create(client, auth_headers, "I fear pricing my work")
    embedder.embed.side_effect = EmbeddingError("Embedding request timed out")

    response = client.post(f"{API}/search", json={"query": "pricing"}, headers=auth_headers)

    assert response.status_code == 200
    hits = response.json()["notes"]
    assert [h["match_type"] for h in hits] == ["keyword"]
    assert hits[0]["similarity"] is None


def test_unknown_search_mode_is_bad_request(client, auth_headers):
    response = client.post(f"{API}/search", json={"query": "x", "mode": "fuzzy"}, headers=auth_headers)

    assert response.status_code == 400
    assert "fuzzy" in response.json()["error"]


def test_tags_are_counted_per_owner(client, auth_headers, enricher, other_owner_id):
    _create(client, auth_headers, "one")
    enricher.analyze.return_value = NoteAnalysis(tags=["#杠杆效应", "#focus"], summary="s")
    _create(client, auth_headers, "two")
    other_headers = {"Authorization": f"Bearer {create_access_token(other_owner_id)}"}

    mine = client.get(f"{API}/tags", headers=auth_headers).json()
    theirs = client.get(f"{API}/tags", headers=other_headers).json()

    assert mine == {"tags": [{"tag": "#杠杆效应", "count": 2}, {"tag": "#focus", "count": 1}]}
    assert theirs == {"tags": []}


def test_list_notes_rejects_huge_page(client, auth_headers, repository):
    repository.fail_on("list_notes", AssertionError("store must not be queried"))

    response = client.get(f"{API}/notes", params={"page": str(10**30)}, headers=auth_headers)

    assert response.status_code == 400
    assert "page" in response.json()["error"]


def test_list_notes_clamps_huge_limit(client, auth_headers):
    _create(client, auth_headers, "only note")

    response = client.get(f"{API}/notes", params={"limit": str(10**30)}, headers=auth_headers)

    assert response.status_code == 200
    assert len(response.json()["notes"]) == 1
