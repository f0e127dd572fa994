"""Second Brain: note capture with LLM enrichment and hybrid retrieval."""

__version__ = "0.1.0"
