"""Deterministic keyword classifier.

Entries within a dimension are not mutually exclusive: every entry whose
keywords occur in the text becomes a candidate, in table order. More than one
candidate is the ambiguous case the approval router sends to review.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from teamcase.classification.rule_tables import RuleEntry, RuleTables, default_rule_tables
from teamcase.classification.types import (
    FALLBACK_CONFIDENCE,
    FALLBACK_LABEL,
    Candidate,
    ClassificationResult,
    Classifier,
    LabeledConfidence,
    Reasoning,
    TeamTypeLabel,
)
from teamcase.ingestion.item_types import NormalizedItem


EXCERPT_CHARS = 200

Match = Tuple[RuleEntry, List[str]]


def match_entries(text: str, entries: Sequence[RuleEntry]) -> List[Match]:
    out: List[Match] = []
    for entry in entries:
        hits = [kw for kw in entry.keywords if kw in text]
        if hits:
            out.append((entry, hits))
    return out


def _labeled(matches: List[Match]) -> LabeledConfidence:
    if not matches:
        return LabeledConfidence(
            label=FALLBACK_LABEL,
            confidence=FALLBACK_CONFIDENCE,
            candidates=(Candidate(FALLBACK_LABEL, FALLBACK_CONFIDENCE),),
        )
    candidates = tuple(Candidate(e.label_id, e.confidence) for e, _ in matches)
    return LabeledConfidence(
        label=candidates[0].label,
        confidence=candidates[0].confidence,
        alternatives=tuple(c.label for c in candidates[1:]),
        candidates=candidates,
    )


def _team_type(matches: List[Match]) -> TeamTypeLabel:
    base = _labeled(matches)
    category = matches[0][0].category if matches else FALLBACK_LABEL
    return TeamTypeLabel(
        label=base.label,
        confidence=base.confidence,
        alternatives=base.alternatives,
        candidates=base.candidates,
        category=category or FALLBACK_LABEL,
    )


def _reason(matches: List[Match]) -> str:
    if not matches:
        return "no keyword matched"
    return "; ".join(f"{e.label_id}: {', '.join(hits)}" for e, hits in matches)


def _excerpt(snippet: str) -> str:
    s = (snippet or "").strip()
    return s if len(s) <= EXCERPT_CHARS else s[:EXCERPT_CHARS] + "..."


class RuleBasedClassifier(Classifier):
    name = "rules"

    def __init__(self, tables: Optional[RuleTables] = None):
        self.tables = tables or default_rule_tables()

    def classify(self, item: NormalizedItem) -> Optional[ClassificationResult]:
        text = item.text
        actor_matches = match_entries(text, self.tables.actors)
        type_matches = match_entries(text, self.tables.team_types)
        category_matches = match_entries(text, self.tables.primary_categories)

        positive = sum(1 for cue in self.tables.positive_cues if cue in text)
        negative = sum(1 for cue in self.tables.negative_cues if cue in text)

        return ClassificationResult(
            actor=_labeled(actor_matches),
            team_type=_team_type(type_matches),
            primary_category=_labeled(category_matches),
            excerpt=_excerpt(item.snippet),
            reasoning=Reasoning(
                actor_reason=_reason(actor_matches),
                type_reason=_reason(type_matches),
                is_positive=positive > negative,
            ),
            is_relevant=True,
        )
