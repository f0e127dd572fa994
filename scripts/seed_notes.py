#!/usr/bin/env python3
"""
Seed Sample Notes

Posts a handful of reflections through the running API so enrichment,
embedding and search can be exercised end to end.

Usage:
    python scripts/seed_notes.py
    python scripts/seed_notes.py --owner 5b0c...  # Seed a specific owner
    python scripts/seed_notes.py --search pricing  # Run a search afterwards
"""

from __future__ import annotations

import argparse
import sys
import uuid

import httpx

from second_brain.core.security import create_access_token

DEFAULT_API_URL = "http://localhost:8000"
TIMEOUT = 120.0  # enrichment runs inline

SAMPLE_NOTES = [
    "I fear pricing my work. Every quote feels like asking for too much.",
    "Shipped the onboarding flow today. Small, boring, and it finally works.",
    "Reading about leverage: code and media scale without my time.",
    "Noticed I check messages first thing in the morning and lose the best hour.",
]


def log_info(msg: str) -> None:
    print(f"ℹ {msg}")


def log_success(msg: str) -> None:
    print(f"✓ {msg}")


def log_error(msg: str) -> None:
    print(f"✗ {msg}")


def check_api(api_url: str) -> bool:
    try:
        r = httpx.get(f"{api_url}/health", timeout=5.0)
        return r.status_code == 200
    except httpx.RequestError:
        return False


def create_note(client: httpx.Client, content: str) -> bool:
    """Submit one note and print its enrichment."""
    try:
        r = client.post("/api/v1/notes", json={"content": content})
    except httpx.RequestError as e:
        log_error(f"Request failed: {e}")
        return False

    if r.status_code != 201:
        log_error(f"Failed: {r.status_code} - {r.text}")
        return False

    data = r.json()
    tags = ", ".join(data.get("tags") or []) or "-"
    log_success(f"{data['id']} [{data.get('category') or '-'}] tags: {tags}")
    return True


def run_search(client: httpx.Client, query: str) -> None:
    r = client.post("/api/v1/search", json={"query": query, "mode": "hybrid"})
    if r.status_code != 200:
        log_error(f"Search failed: {r.status_code} - {r.text}")
        return
    hits = r.json()["notes"]
    log_info(f"{len(hits)} hits for '{query}'")
    for hit in hits:
        similarity = hit.get("similarity")
        score = f"{similarity:.3f}" if similarity is not None else "  -  "
        print(f"  {hit['match_type']:<8} {score}  {hit['content'][:60]}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sample notes through the API")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API base URL")
    parser.add_argument("--owner", default=None, help="Owner UUID (random if omitted)")
    parser.add_argument("--search", default=None, help="Query to run after seeding")
    args = parser.parse_args()

    owner_id = uuid.UUID(args.owner) if args.owner else uuid.uuid4()
    token = create_access_token(owner_id)

    print("\n🧠 Second Brain Seeder\n")

    if not check_api(args.api_url):
        log_error(f"API not available at {args.api_url}")
        return 1
    log_success("API connected")
    log_info(f"Seeding as owner {owner_id}")

    headers = {"Authorization": f"Bearer {token}"}
    with httpx.Client(base_url=args.api_url, headers=headers, timeout=TIMEOUT) as client:
        success = sum(create_note(client, content) for content in SAMPLE_NOTES)
        print()
        if args.search:
            run_search(client, args.search)
            print()

    if success == len(SAMPLE_NOTES):
        log_success(f"Created {success}/{len(SAMPLE_NOTES)} notes")
        return 0
    log_error(f"Created {success}/{len(SAMPLE_NOTES)} notes")
    return 1


if __name__ == "__main__":
    sys.exit(main())
