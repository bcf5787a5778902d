"""Near-duplicate suppression for distilled insights.

A candidate is dropped when some existing memory already contains most of
its significant words. The check is a word-overlap heuristic, not an exact
match, so rephrasings of a stored fact are caught too::

    stored:    "Python 3.13 removes the GIL in free-threaded builds"
    candidate: "Python 3.13 removed GIL for free-threaded mode"  -> duplicate
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP_THRESHOLD = 0.6
DEFAULT_MIN_WORD_LENGTH = 5  # "significant" words are longer than 4 characters


def significant_words(text: str, min_length: int = DEFAULT_MIN_WORD_LENGTH) -> List[str]:
    return [w for w in text.lower().split() if len(w) >= min_length]


class DeduplicationFilter:
    """Filters candidate insights against a snapshot of stored contents.

    Candidates are only compared to ``existing_contents``, never to each
    other, so two near-identical candidates in one batch both survive.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_OVERLAP_THRESHOLD,
        min_word_length: int = DEFAULT_MIN_WORD_LENGTH,
    ) -> None:
        if not 0.0 < threshold <= 1.0:
            raise ValueError("threshold must be in (0, 1]")
        self.threshold = threshold
        self.min_word_length = min_word_length

    def overlap(self, candidate: str, existing: str) -> float:
        """Fraction of the candidate's significant words found in ``existing``."""
        words = significant_words(candidate, self.min_word_length)
        if not words:
            return 0.0
        haystack = existing.lower()
        matched = sum(1 for w in words if w in haystack)
        return matched / len(words)

    def is_duplicate(self, candidate: str, existing_contents: Sequence[str]) -> bool:
        if not significant_words(candidate, self.min_word_length):
            return False
        return any(self.overlap(candidate, e) >= self.threshold for e in existing_contents)

    def dedupe(self, candidates: Iterable[str], existing_contents: Iterable[str]) -> List[str]:
        """Return the candidates that are not near-duplicates, in input order."""
        existing = [e.lower() for e in existing_contents]
        novel = []
        for candidate in candidates:
            if self.is_duplicate(candidate, existing):
                logger.debug("Dropping near-duplicate insight: %.60s", candidate)
                continue
            novel.append(candidate)
        return novel


def dedupe(candidates: Iterable[str], existing_contents: Iterable[str]) -> List[str]:
    """Module-level shortcut using the default threshold."""
    return DeduplicationFilter().dedupe(candidates, existing_contents)
