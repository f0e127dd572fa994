#!/usr/bin/env python3
"""
AI Service Probe

Checks that the configured OpenAI-compatible endpoint is reachable and,
optionally, runs one enrichment and one embedding call.

Usage:
    python scripts/check_ai_service.py
    python scripts/check_ai_service.py --full "I fear pricing my work"
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from second_brain.core.config import AIClientConfig
from second_brain.core.exceptions import SecondBrainError
from second_brain.services.embeddings import EmbeddingClient
from second_brain.services.enrichment import EnrichmentClient


async def probe(sample: str | None) -> int:
    config = AIClientConfig.from_settings()
    if config.is_mock:
        print("ℹ AI_API_KEY not set: clients run in mock mode")

    enricher = EnrichmentClient(config)
    if not await enricher.health_check():
        print(f"✗ {config.base_url} not reachable")
        return 1
    print(f"✓ {config.base_url} reachable")

    if sample is None:
        return 0

    try:
        analysis = await enricher.analyze(sample)
        print(f"✓ analysis via {config.chat_model}")
        print(f"  category: {analysis.category or '-'}")
        print(f"  tags: {', '.join(analysis.tags) or '-'}")
        print(f"  mental model: {analysis.mental_model or '-'}")
        vector = await EmbeddingClient(config).embed(sample)
        print(f"✓ embedding via {config.embedding_model}: {len(vector)} dims")
    except SecondBrainError as e:
        print(f"✗ {e.public_message}")
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Probe the AI service")
    parser.add_argument("--full", metavar="TEXT", default=None, help="Also analyze and embed TEXT")
    args = parser.parse_args()
    return asyncio.run(probe(args.full))


if __name__ == "__main__":
    sys.exit(main())
