"""Accept / review routing.

A dimension is confident at confidence >= 80. Status follows from the actor and
team-type dimensions alone:

    actor  type   status          needs_review
    yes    yes    auto-approved   {}
    no     yes    pending-actor   {actor}
    yes    no     pending-type    {type}
    no     no     pending-both    {actor, type}

Separately, any dimension that came back with several candidate labels gets a
disambiguation entry in the review queue, whatever the status says.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from teamcase.analytics.keywords import KeywordSuggestion
from teamcase.classification.types import ClassificationResult, LabeledConfidence


STATUS_AUTO_APPROVED = "auto-approved"
STATUS_PENDING_ACTOR = "pending-actor"
STATUS_PENDING_TYPE = "pending-type"
STATUS_PENDING_BOTH = "pending-both"

REVIEW_ACTOR = "actor"
REVIEW_TYPE = "type"

KIND_CLASSIFICATION = "classification"
KIND_KEYWORD = "keyword"

KEYWORD_OPTIONS: Tuple[str, ...] = ("promote_primary", "promote_secondary", "reject")


@dataclass(frozen=True)
class ApprovalQueueEntry:
    kind: str
    options: Tuple[Any, ...]
    link: Optional[str] = None
    dimension: Optional[str] = None
    term: Optional[str] = None
    frequency: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "link": self.link,
            "dimension": self.dimension,
            "term": self.term,
            "frequency": self.frequency,
            "options": list(self.options),
        }


@dataclass(frozen=True)
class RoutingDecision:
    status: str
    needs_review: FrozenSet[str]
    queue_entries: Tuple[ApprovalQueueEntry, ...] = field(default_factory=tuple)

    @property
    def auto_approved(self) -> bool:
        return self.status == STATUS_AUTO_APPROVED


def derive_status(actor_confident: bool, type_confident: bool) -> Tuple[str, FrozenSet[str]]:
    if actor_confident and type_confident:
        return STATUS_AUTO_APPROVED, frozenset()
    if type_confident:
        return STATUS_PENDING_ACTOR, frozenset({REVIEW_ACTOR})
    if actor_confident:
        return STATUS_PENDING_TYPE, frozenset({REVIEW_TYPE})
    return STATUS_PENDING_BOTH, frozenset({REVIEW_ACTOR, REVIEW_TYPE})


def disambiguation_entry(link: str, dimension: str, labeled: LabeledConfidence) -> ApprovalQueueEntry:
    return ApprovalQueueEntry(
        kind=KIND_CLASSIFICATION,
        link=link,
        dimension=dimension,
        options=tuple({"label": c.label, "confidence": c.confidence} for c in labeled.candidates),
    )


class ApprovalRouter:
    def route(self, link: str, result: ClassificationResult) -> RoutingDecision:
        status, needs_review = derive_status(result.actor.is_confident, result.team_type.is_confident)
        entries: List[ApprovalQueueEntry] = []
        for dimension, labeled in (
            ("actor", result.actor),
            ("team_type", result.team_type),
            ("primary_category", result.primary_category),
        ):
            if labeled.is_ambiguous:
                entries.append(disambiguation_entry(link, dimension, labeled))
        return RoutingDecision(status=status, needs_review=needs_review, queue_entries=tuple(entries))

    def keyword_entries(self, suggestions: Sequence[KeywordSuggestion]) -> List[ApprovalQueueEntry]:
        return [
            ApprovalQueueEntry(kind=KIND_KEYWORD, term=s.term, frequency=s.frequency, options=KEYWORD_OPTIONS)
            for s in suggestions
        ]
