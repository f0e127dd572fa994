"""
Embedding Client

OpenAI-compatible embedding generation (text-embedding-3-small class).
Supports mock mode for local development without API costs.

One outbound call per invocation: the SDK's own retries are disabled and
nothing is cached. Callers decide what to do on failure.
"""

from __future__ import annotations

import logging
import random

import openai
from openai import AsyncOpenAI

from second_brain.core.config import AIClientConfig
from second_brain.core.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """
    Turns text into a fixed-length vector via the ``/embeddings`` API.

    Usage::

        client = EmbeddingClient(AIClientConfig.from_settings())
        vector = await client.embed("I fear pricing my work")
    """

    def __init__(self, config: AIClientConfig | None = None) -> None:
        self._config = config or AIClientConfig.from_settings()

    @property
    def dimension(self) -> int:
        return self._config.embedding_dimension

    async def embed(self, text: str) -> list[float]:
        """
        Generate a vector embedding for the given text.

        Args:
            text: Input text to embed.

        Returns:
            Embedding vector as returned by the provider.

        Raises:
            EmbeddingError: Empty text, timeout, upstream error status, or a
                response without a vector.
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        # Mock mode: random vectors for dev/test (no API costs, no network)
        if self._config.is_mock:
            logger.warning("Embedding API key not configured, using mock vector")
            return [random.random() for _ in range(self._config.embedding_dimension)]

        client = AsyncOpenAI(
            api_key=self._config.api_key,
            base_url=self._config.base_url,
            timeout=self._config.embedding_timeout_ms / 1000,
            max_retries=0,
            default_headers={
                "HTTP-Referer": self._config.http_referer,
                "X-Title": self._config.app_title,
            },
        )

        try:
            response = await client.embeddings.create(
                model=self._config.embedding_model,
                input=text,
            )
        except openai.APITimeoutError as e:
            logger.error("Embedding request timed out (model=%s)", self._config.embedding_model)
            raise EmbeddingError("Embedding request timed out") from e
        except openai.APIStatusError as e:
            message = _upstream_message(e.body) or f"Embedding service returned {e.status_code}"
            logger.error("Embedding API error %s: %s", e.status_code, message)
            raise EmbeddingError(message) from e
        except openai.APIError as e:
            logger.error("Embedding request failed: %s", e)
            raise EmbeddingError("Failed to create embedding") from e
        finally:
            await client.close()

        # Some proxies answer 200 with an error payload instead of data
        extra = getattr(response, "model_extra", None) or {}
        if extra.get("error"):
            message = _upstream_message(extra) or "Embedding service error"
            logger.error("Embedding response carried an error payload: %s", message)
            raise EmbeddingError(message)

        data = getattr(response, "data", None) or []
        embedding = getattr(data[0], "embedding", None) if data else None
        if not isinstance(embedding, list) or not embedding:
            logger.error("Embedding response has no vector (items=%d)", len(data))
            raise EmbeddingError("Invalid embedding response")

        if len(embedding) != self._config.embedding_dimension:
            logger.error(
                "Expected embedding dimension %d, got %d (model=%s)",
                self._config.embedding_dimension,
                len(embedding),
                self._config.embedding_model,
            )
            raise EmbeddingError(
                f"Embedding has {len(embedding)} dimensions, expected {self._config.embedding_dimension}"
            )
        return embedding


def _upstream_message(body: object) -> str | None:
    """Extract ``error.message`` from an upstream error body, if present."""
    if not isinstance(body, dict):
        return None
    error = body.get("error", body)
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return None
