"""
Analysis Parser

Decodes the enrichment model's reply into a canonical ``NoteAnalysis``.

The upstream prompt format has changed many times, so the reply can be:
    - prose, optionally preceded by a ``<thinking>`` reasoning block;
    - a JSON object in one of several historical shapes.

Shapes are modelled as an ordered tuple of matchers (predicate + mapper),
evaluated top-down. The first match wins; anything unrecognised falls
back to reading ``summary``/``mental_model``/``category``/``tags``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Final

from second_brain.core.exceptions import EnrichmentError

THINKING_BLOCK: Final = re.compile(r"<thinking>[\s\S]*?</thinking>", re.IGNORECASE)
CODE_FENCE: Final = re.compile(r"```(?:json)?", re.IGNORECASE)
EXTRA_BLANK_LINES: Final = re.compile(r"\n{3,}")

SECTION_SEPARATOR: Final = "\n\n---\n\n"
DEFAULT_CATEGORY: Final = "mindset"

# Section headings and bullet labels shown to users
SIGNAL_HEADING: Final = "信号解码"
ACTION_HEADING: Final = "行动指南"
MODEL_HEADING: Final = "心智模型"
PIVOT_LABEL: Final = "战略意图"
ACTION_LABEL: Final = "关键动作"
MICRO_ACTION_LABEL: Final = "微行动"
MEANING_LABEL: Final = "背后的意义"
CONCEPT_LABEL: Final = "概念"
TAKEAWAY_LABEL: Final = "资产总结"


@dataclass
class NoteAnalysis:
    """Canonical enrichment output. Empty strings mean 'not provided'."""

    category: str = ""
    tags: list[str] = field(default_factory=list)
    summary: str = ""
    mental_model: str = ""


@dataclass(frozen=True)
class ShapeMatcher:
    """A known JSON reply shape: detected by any of ``keys`` holding a string."""

    name: str
    keys: tuple[str, ...]
    mapper: Callable[[dict[str, Any]], NoteAnalysis]

    def matches(self, data: dict[str, Any]) -> bool:
        return any(isinstance(data.get(key), str) for key in self.keys)


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value).strip()


def _text_or_lines(data: dict[str, Any], key: str) -> str:
    """Read a field that may be a string or a list of steps."""
    value = data.get(key)
    if isinstance(value, list):
        return "\n".join(str(item) for item in value)
    return "" if value is None else str(value).strip()


def _tags(data: dict[str, Any]) -> list[str]:
    value = data.get("tags")
    if not isinstance(value, list):
        return []
    return [str(tag) for tag in value]


def _category(data: dict[str, Any], default: str = DEFAULT_CATEGORY) -> str:
    value = data.get("category")
    return default if value is None else str(value)


def _join(parts: list[str], separator: str = "\n\n") -> str:
    return separator.join(part for part in parts if part)


# ---------------------------------------------------------------------------
# Shape mappers
# ---------------------------------------------------------------------------


def _from_essentialist(data: dict[str, Any]) -> NoteAnalysis:
    signal = _text(data, "signal_decoding")
    action_lines = _join(
        [
            f"- {PIVOT_LABEL} {pivot}" if (pivot := _text(data, "pivot")) else "",
            f"- {ACTION_LABEL} {step}" if (step := _text(data, "micro_action")) else "",
            f"- {MEANING_LABEL} {meaning}" if (meaning := _text(data, "meaning")) else "",
        ]
    )
    summary = _join(
        [
            f"### {SIGNAL_HEADING}\n\n{signal}" if signal else "",
            f"### {ACTION_HEADING}\n\n{action_lines}" if action_lines else "",
        ],
        SECTION_SEPARATOR,
    )
    return NoteAnalysis(
        category=_category(data),
        tags=_tags(data),
        summary=summary,
        mental_model=_text(data, "mental_model"),
    )


def _from_partner(data: dict[str, Any]) -> NoteAnalysis:
    # An empty asset_concept is kept; only a missing one falls back
    concept_key = "asset_concept" if data.get("asset_concept") is not None else "mental_model"
    concept = _text(data, concept_key)
    takeaway = _text(data, "asset_takeaway")
    understanding = _text(data, "understanding")
    action_lines = _join(
        [
            f"{PIVOT_LABEL}：{pivot}" if (pivot := _text(data, "pivot")) else "",
            f"{MICRO_ACTION_LABEL}：{step}" if (step := _text(data, "micro_action")) else "",
            f"{MEANING_LABEL}：{meaning}" if (meaning := _text(data, "meaning")) else "",
        ],
        "\n",
    )
    asset_lines = _join(
        [
            f"{CONCEPT_LABEL}：**【{concept}】**" if concept else "",
            f"{TAKEAWAY_LABEL}：{takeaway}" if takeaway else "",
        ],
        "\n",
    )
    summary = _join(
        [
            f"{SIGNAL_HEADING}\n\n{understanding}" if understanding else "",
            f"{ACTION_HEADING}\n\n{action_lines}" if action_lines else "",
            f"{MODEL_HEADING}\n\n{asset_lines}" if asset_lines else "",
        ]
    )
    return NoteAnalysis(
        category=_category(data),
        tags=_tags(data),
        summary=summary,
        mental_model=concept,
    )


def _sectioned(*keys: str, model_key: str = "mental_model") -> Callable[[dict[str, Any]], NoteAnalysis]:
    """Mapper for flat shapes: summary is the listed fields joined by blank lines."""

    def mapper(data: dict[str, Any]) -> NoteAnalysis:
        return NoteAnalysis(
            category=_category(data),
            tags=_tags(data),
            summary=_join([_text_or_lines(data, key) for key in keys]),
            mental_model=_text(data, model_key),
        )

    return mapper


def _from_plain(data: dict[str, Any]) -> NoteAnalysis:
    tags = data.get("tags")
    return NoteAnalysis(
        category=_category(data, default=""),
        tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
        summary=_text(data, "summary"),
        mental_model=_text(data, "mental_model"),
    )


# Newest shape first. Order matters: several shapes share keys (pivot, audit).
SHAPES: Final[tuple[ShapeMatcher, ...]] = (
    ShapeMatcher(
        "essentialist",
        ("signal_decoding", "pivot", "micro_action", "meaning"),
        _from_essentialist,
    ),
    ShapeMatcher(
        "partner",
        ("understanding", "asset_concept", "asset_takeaway"),
        _from_partner,
    ),
    ShapeMatcher("pivot_audit", ("audit", "pivot", "strategy"), _sectioned("audit", "pivot", "strategy")),
    ShapeMatcher("audit_insight", ("audit", "insight", "strategy"), _sectioned("audit", "insight", "strategy")),
    ShapeMatcher("accessible", ("translation", "action"), _sectioned("translation", "action")),
    ShapeMatcher("strategist", ("signal", "reframe", "leverage"), _sectioned("signal", "reframe", "leverage")),
    ShapeMatcher(
        "naval",
        ("essence", "action_plan", "naval_quote"),
        _sectioned("essence", "action_plan", model_key="naval_quote"),
    ),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def strip_thinking(raw: str) -> str:
    """Remove reasoning blocks and squeeze the blank lines they leave behind."""
    return EXTRA_BLANK_LINES.sub("\n\n", THINKING_BLOCK.sub("", raw)).strip()


def match_shape(data: dict[str, Any]) -> ShapeMatcher | None:
    """Return the first known shape ``data`` matches, or None."""
    return next((shape for shape in SHAPES if shape.matches(data)), None)


def parse_analysis(raw: str) -> NoteAnalysis:
    """
    Turn a raw model reply into a ``NoteAnalysis``.

    Args:
        raw: ``choices[0].message.content`` from the chat API.

    Returns:
        The canonical analysis. Prose replies become the summary with
        empty category, tags and mental model.

    Raises:
        EnrichmentError: Empty reply, or JSON that cannot be decoded into
            an object.
    """
    text = strip_thinking(raw or "")
    if not text:
        raise EnrichmentError("Analysis service returned an empty response")

    candidate = CODE_FENCE.sub("", text).strip()
    if not candidate.startswith("{"):
        return NoteAnalysis(summary=text)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise EnrichmentError("Failed to parse analysis JSON") from e
    if not isinstance(data, dict):
        raise EnrichmentError("Failed to parse analysis JSON")

    shape = match_shape(data)
    if shape is None:
        return _from_plain(data)
    return shape.mapper(data)
