"""Model-backed insight distillation.

``ModelSummarizer`` asks a text-generation model for a JSON array of short
facts and parses whatever comes back on a best-effort basis: the first
``[...]`` span in the reply is decoded, and anything unusable yields an
empty list. Malformed output is not retried.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List, Optional, Sequence

from lorekeeper.protocols import ExtractionError, ModelMessage, ModelProtocol
from lorekeeper.types import PageContent

logger = logging.getLogger(__name__)

MAX_COMBINED_CHARS = 10_000
MAX_INSIGHTS = 8
MAX_INSIGHT_CHARS = 120

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

DISTILL_PROMPT = """You are a knowledge extractor. The user wants you to learn about: "{topic}".
Below is content from recent web pages on this topic.
Extract 3-8 concise, factual insights that are worth remembering long-term.
Each insight should be a single sentence (max {max_chars} characters).
Return ONLY a JSON array of strings, nothing else. Example:
["Insight 1", "Insight 2", "Insight 3"]

--- CONTENT ---
{content}"""


def combine_pages(pages: Sequence[PageContent], limit: int = MAX_COMBINED_CHARS) -> str:
    """Join pages as ``### title`` blocks and cut the result at ``limit`` characters."""
    blocks = [f"### {p.title or p.url}\n{p.content}" for p in pages]
    return "\n\n---\n\n".join(blocks)[:limit]


def parse_insight_array(text: str) -> List[str]:
    """Decode the first array-like span of ``text`` into insight strings.

    Raises:
        ExtractionError: if there is no array or it does not decode.
    """
    text = (text or "").strip()
    if not text:
        raise ExtractionError("Empty model response")
    match = _ARRAY_RE.search(text)
    if not match:
        raise ExtractionError("No JSON array in model response")
    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Malformed JSON array: {e}") from e
    if not isinstance(items, list):
        raise ExtractionError("Model response is not a list")

    insights = []
    for item in items:
        if not isinstance(item, str) or not item.strip():
            continue
        insight = item.strip()
        if len(insight) > MAX_INSIGHT_CHARS:
            logger.debug("Dropping over-long insight (%d chars)", len(insight))
            continue
        insights.append(insight)
    return insights[:MAX_INSIGHTS]


def extract_insights(text: str) -> List[str]:
    """Like ``parse_insight_array`` but returns [] instead of raising."""
    try:
        return parse_insight_array(text)
    except ExtractionError as e:
        logger.warning("Could not extract insights: %s", e)
        return []


class ModelSummarizer:
    """Summarizer that distills pages through a ModelProtocol."""

    def __init__(
        self,
        model: ModelProtocol,
        *,
        temperature: Optional[float] = 0.2,
        max_tokens: int = 1024,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    @property
    def model(self) -> ModelProtocol:
        return self._model

    def build_prompt(self, topic: str, pages: Sequence[PageContent]) -> str:
        return DISTILL_PROMPT.format(
            topic=topic,
            max_chars=MAX_INSIGHT_CHARS,
            content=combine_pages(pages),
        )

    def distill(self, topic: str, pages: list[PageContent]) -> list[str]:
        """Return up to 8 short insights about ``topic``; [] on any failure."""
        if not pages:
            return []

        prompt = self.build_prompt(topic, pages)
        try:
            response = self._model.generate(
                [ModelMessage(role="user", content=prompt)],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            logger.warning("Distillation for '%s' failed: %s", topic, e)
            return []

        insights = extract_insights(response.content)
        logger.debug("Distilled %d insight(s) for '%s'", len(insights), topic)
        return insights
