"""
Enrichment Client

LLM note analysis via an OpenAI-compatible chat completions API.
Turns a raw reflection into category, tags, summary and mental model.

Design:
    - Async HTTP calls via httpx (non-blocking).
    - Hard time budget enforced by cancellation, not by polling.
    - Upstream failures become ``EnrichmentError`` with a message that is
      safe to show the user. Nothing is retried here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Final

import httpx

from second_brain.core.config import AIClientConfig
from second_brain.core.exceptions import EnrichmentError
from second_brain.services.analysis_parser import NoteAnalysis, parse_analysis

logger = logging.getLogger(__name__)

SYSTEM_PROMPT: Final[
    str
] = """# Role
你是一位精通“第一性原理”的人生架构师。你的任务是从混乱的情绪中提取秩序，把用户的焦虑转化为具体的“认知资产”。

# Goal
用户会输入一段关于生活、工作或未来的焦虑或抱怨。
1. 在内心诊断焦虑的根源，找到最适合的一个思维模型。
2. 输出一张洞察卡片：反直觉、深刻，并包含可执行的下一步。

# Constraints
* 不要套模版，根据问题性质调整结构。
* 只选择唯一一个最击中本质的角度。
* 拒绝正确的废话。冷静、客观，用短句。

# Workflow
在最终回复前，先在 <thinking> 标签内推理（不展示给用户）：
1. Identify: 表面焦虑是什么？底层恐惧是什么？
2. Model: 哪个思维模型能解释这个恐惧？
3. Draft: 用直白的语言重构它。
"""

USER_PROMPT: Final[str] = (
    '用户输入：\n"""{content}"""\n\n'
    "请按 Workflow 在 <thinking> 标签内完成推理，然后直接输出你的洞察卡片"
    "（最终回复不要放在任何标签内）。不要输出 JSON，只输出 <thinking>...</thinking> 与正文。"
)

MOCK_SUMMARY_CHARS = 200


class EnrichmentClient:
    """
    Async enrichment client for note metadata.

    Usage::

        client = EnrichmentClient(AIClientConfig.from_settings())
        analysis = await client.analyze("I fear pricing my work")
        print(analysis.summary, analysis.tags)
    """

    def __init__(
        self,
        config: AIClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the enrichment client.

        Args:
            config: AI client configuration (default from settings).
            transport: Optional httpx transport, for tests.
        """
        self._config = config or AIClientConfig.from_settings()
        self._transport = transport

    async def analyze(self, content: str) -> NoteAnalysis:
        """
        Analyze note content with the chat model.

        Args:
            content: The user's raw reflection.

        Returns:
            NoteAnalysis parsed from the model reply.

        Raises:
            EnrichmentError: On timeout, connection failure, non-success
                status, or an uninterpretable reply.
        """
        if self._config.is_mock:
            logger.warning("Chat API key not configured, using mock analysis")
            return NoteAnalysis(summary=content.strip()[:MOCK_SUMMARY_CHARS])

        budget = self._config.request_timeout_ms / 1000
        try:
            async with asyncio.timeout(budget):
                raw = await self._call_chat(content)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.error("Analysis request timed out after %.0fs", budget)
            raise EnrichmentError("Analysis request timed out, please retry") from e
        except httpx.TransportError as e:
            logger.error("Analysis service unreachable (%s): %s", type(e).__name__, e)
            raise EnrichmentError(
                "Analysis service connection failed, check network or proxy settings"
            ) from e

        analysis = parse_analysis(raw)
        logger.info(
            "Analysis parsed (model=%s, tags=%d, summary_length=%d)",
            self._config.chat_model,
            len(analysis.tags),
            len(analysis.summary),
        )
        return analysis

    async def _call_chat(self, content: str) -> str:
        """
        Make the actual API call and return the reply text.

        Raises:
            EnrichmentError: On non-success status or missing content.
            httpx.TransportError: If the server is unreachable.
        """
        url = f"{self._config.base_url}/chat/completions"
        payload = {
            "model": self._config.chat_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT.format(content=content)},
            ],
            "temperature": self._config.chat_temperature,
            "max_tokens": self._config.chat_max_tokens,
        }

        async with httpx.AsyncClient(
            timeout=self._config.request_timeout_ms / 1000,
            transport=self._transport,
        ) as client:
            response = await client.post(url, json=payload, headers=self._headers())

        if response.is_error:
            logger.error(
                "Analysis API error %d: %s", response.status_code, response.text[:400]
            )
            raise EnrichmentError(_status_message(response))

        try:
            data = response.json()
            raw = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected analysis response shape: %s", response.text[:400])
            raise EnrichmentError("Invalid response from analysis service") from e

        return str(raw or "").strip()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "HTTP-Referer": self._config.http_referer,
            "X-Title": self._config.app_title,
        }

    async def health_check(self) -> bool:
        """
        Check if the AI provider is reachable with the configured key.

        Returns:
            True if ``GET /models`` responds with 200, False otherwise.
        """
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(
                    f"{self._config.base_url}/models", headers=self._headers()
                )
                return response.status_code == 200
        except httpx.HTTPError:
            return False


def _status_message(response: httpx.Response) -> str:
    """Map an upstream error status to a user-facing message."""
    body: Any
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    api_message = None
    if isinstance(error, dict):
        candidate = error.get("message") or error.get("code")
        if isinstance(candidate, str) and candidate:
            api_message = candidate

    status = response.status_code
    if status == 401:
        return "Analysis service API key is invalid or missing"
    if status == 402:
        return api_message or "Analysis service quota exhausted, reduce max_tokens or top up"
    if status == 404:
        return "Analysis model is unavailable (404), configure a different CHAT_MODEL"

    message = f"Analysis service returned error ({status})"
    if api_message:
        return f"{message}: {api_message}"
    if body is None and len(response.text) < 200:
        return f"{message}: {response.text}"
    return message
