"""Classification result contract shared by every classifier strategy."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from teamcase.ingestion.item_types import NormalizedItem


FALLBACK_LABEL = "기타"
FALLBACK_CONFIDENCE = 50
CONFIDENT_THRESHOLD = 80


@dataclass(frozen=True)
class Candidate:
    label: str
    confidence: int


@dataclass(frozen=True)
class LabeledConfidence:
    label: str
    confidence: int
    alternatives: Tuple[str, ...] = ()
    # Every candidate the strategy produced, first one == label.
    candidates: Tuple[Candidate, ...] = ()

    @property
    def is_confident(self) -> bool:
        return self.confidence >= CONFIDENT_THRESHOLD

    @property
    def is_ambiguous(self) -> bool:
        return len(self.candidates) > 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "confidence": self.confidence,
            "alternatives": list(self.alternatives),
            "candidates": [{"label": c.label, "confidence": c.confidence} for c in self.candidates],
        }


@dataclass(frozen=True)
class TeamTypeLabel(LabeledConfidence):
    category: str = FALLBACK_LABEL

    def as_dict(self) -> Dict[str, Any]:
        out = super().as_dict()
        out["category"] = self.category
        return out


@dataclass(frozen=True)
class Reasoning:
    actor_reason: str = ""
    type_reason: str = ""
    is_positive: bool = False


@dataclass(frozen=True)
class ClassificationResult:
    actor: LabeledConfidence
    team_type: TeamTypeLabel
    primary_category: LabeledConfidence
    excerpt: str = ""
    reasoning: Reasoning = field(default_factory=Reasoning)
    is_relevant: bool = True

    def as_dict(self) -> Dict[str, Any]:
        return {
            "actor": self.actor.as_dict(),
            "team_type": self.team_type.as_dict(),
            "primary_category": self.primary_category.as_dict(),
            "excerpt": self.excerpt,
            "reasoning": {
                "actor_reason": self.reasoning.actor_reason,
                "type_reason": self.reasoning.type_reason,
                "is_positive": self.reasoning.is_positive,
            },
            "is_relevant": self.is_relevant,
        }


class Classifier:
    """Strategy interface: the orchestrator never cares which one it holds."""

    name: str = "base"

    def classify(self, item: NormalizedItem) -> Optional[ClassificationResult]:
        """Return a result, or None when the item is not relevant / unclassifiable."""
        raise NotImplementedError
