"""Run-scoped keyword frequency tracking (taxonomy suggestions).

Every item that gets past dedup is scanned for 2-5 character Hangul tokens.
Tokens that overlap existing vocabulary (substring or superstring of any
taxonomy term) are ignored so the collector never re-suggests what it already
searches for. Whatever recurs often enough in one run is proposed for review.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List

from teamcase.filtering.taxonomy import Taxonomy
from teamcase.ingestion.item_types import NormalizedItem


_TOKEN_RE = re.compile(r"[가-힣]{2,5}")

MIN_SUGGESTION_COUNT = 10
TOP_SUGGESTIONS = 5


def tokenize(text: str) -> List[str]:
    if not text:
        return []
    return _TOKEN_RE.findall(text)


@dataclass(frozen=True)
class KeywordSuggestion:
    term: str
    frequency: int


class KeywordFrequencyTracker:
    def __init__(self, taxonomy: Taxonomy):
        self.known_terms = [t for t in taxonomy.all_terms() if t]
        self.counts: Dict[str, int] = {}

    def reset(self) -> None:
        self.counts = {}

    def is_known(self, token: str) -> bool:
        return any(token in term or term in token for term in self.known_terms)

    def observe_text(self, text: str) -> None:
        for tok in tokenize(text):
            if self.is_known(tok):
                continue
            self.counts[tok] = self.counts.get(tok, 0) + 1

    def observe(self, item: NormalizedItem) -> None:
        self.observe_text(f"{item.title} {item.snippet}")

    def generate_suggestions(
        self,
        *,
        min_count: int = MIN_SUGGESTION_COUNT,
        top_k: int = TOP_SUGGESTIONS,
    ) -> List[KeywordSuggestion]:
        frequent = [KeywordSuggestion(term=t, frequency=n) for t, n in self.counts.items() if n >= min_count]
        # sorted() is stable: equal counts keep first-seen order
        frequent.sort(key=lambda s: s.frequency, reverse=True)
        return frequent[:top_k]
