"""Persisted case record."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Optional

from teamcase.classification.types import ClassificationResult
from teamcase.filtering.content_filter import FilterDecision
from teamcase.ingestion.item_types import NormalizedItem
from teamcase.review.approval import RoutingDecision


@dataclass(frozen=True)
class CaseRecord:
    link: str
    title: str
    snippet: str
    source_type: str
    search_term: str
    published_at: Optional[datetime]
    source_name: Optional[str]
    tier: int
    filter_reason: str
    classifier: str
    classification: ClassificationResult
    status: str
    needs_review: FrozenSet[str]
    reviewed_at: Optional[datetime] = None
    collected_at: Optional[datetime] = None

    @classmethod
    def build(
        cls,
        item: NormalizedItem,
        decision: FilterDecision,
        result: ClassificationResult,
        routing: RoutingDecision,
        *,
        classifier: str,
    ) -> "CaseRecord":
        return cls(
            link=item.link,
            title=item.title,
            snippet=item.snippet,
            source_type=item.source_type,
            search_term=item.search_term,
            published_at=item.published_at,
            source_name=item.source_name,
            tier=decision.tier,
            filter_reason=decision.reason,
            classifier=classifier,
            classification=result,
            status=routing.status,
            needs_review=routing.needs_review,
            reviewed_at=None,
            collected_at=datetime.now(timezone.utc),
        )

    def to_row(self) -> Dict[str, Any]:
        c = self.classification
        return {
            "link": self.link,
            "title": self.title,
            "snippet": self.snippet,
            "source_type": self.source_type,
            "search_term": self.search_term,
            "published_at": self.published_at,
            "source_name": self.source_name,
            "tier": self.tier,
            "filter_reason": self.filter_reason,
            "classifier": self.classifier,
            "actor": c.actor.label,
            "actor_confidence": c.actor.confidence,
            "team_type": c.team_type.label,
            "team_type_category": c.team_type.category,
            "team_type_confidence": c.team_type.confidence,
            "primary_category": c.primary_category.label,
            "primary_category_confidence": c.primary_category.confidence,
            "excerpt": c.excerpt,
            "is_positive": c.reasoning.is_positive,
            "classification": c.as_dict(),
            "status": self.status,
            "needs_review": sorted(self.needs_review),
            "reviewed_at": self.reviewed_at,
            "collected_at": self.collected_at,
        }
