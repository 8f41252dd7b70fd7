"""Collection taxonomy (primary / secondary / excluded vocabulary).

The taxonomy is read-only for the duration of a run. It only changes when a
reviewer promotes a keyword suggestion, which happens outside the collector.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from jsonschema import Draft202012Validator


DEFAULT_PRIMARY_TERMS: Tuple[str, ...] = (
    "팀플",
    "팀프로젝트",
    "조별과제",
    "공모전",
    "무임승차",
    "프리라이더",
    "역할분담",
    "협업",
    "팀워크",
)

DEFAULT_SECONDARY_TERMS: Tuple[str, ...] = (
    "후기",
    "리뷰",
    "경험",
    "회고",
    "조장",
    "조원",
)

# Sponsored/advertorial posts
DEFAULT_EXCLUDED_TERMS: Tuple[str, ...] = (
    "광고",
    "협찬",
    "체험단",
    "원고료",
)


TAXONOMY_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["primary_terms"],
    "properties": {
        "primary_terms": {"type": "array", "minItems": 1, "items": {"type": "string", "minLength": 1}},
        "secondary_terms": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "excluded_terms": {"type": "array", "items": {"type": "string", "minLength": 1}},
    },
    "additionalProperties": False,
}

_VALIDATOR = Draft202012Validator(TAXONOMY_SCHEMA)


@dataclass(frozen=True)
class Taxonomy:
    primary_terms: Tuple[str, ...] = DEFAULT_PRIMARY_TERMS
    secondary_terms: Tuple[str, ...] = DEFAULT_SECONDARY_TERMS
    excluded_terms: Tuple[str, ...] = DEFAULT_EXCLUDED_TERMS

    def all_terms(self) -> Tuple[str, ...]:
        return self.primary_terms + self.secondary_terms + self.excluded_terms


def taxonomy_from_dict(payload: Dict[str, Any]) -> Taxonomy:
    errors = [e.message for e in _VALIDATOR.iter_errors(payload)]
    if errors:
        raise ValueError("Invalid taxonomy: " + "; ".join(errors))
    return Taxonomy(
        primary_terms=tuple(t.strip().lower() for t in payload["primary_terms"]),
        secondary_terms=tuple(t.strip().lower() for t in payload.get("secondary_terms", [])),
        excluded_terms=tuple(t.strip().lower() for t in payload.get("excluded_terms", [])),
    )


def load_taxonomy(path: str = "") -> Taxonomy:
    """Load a taxonomy JSON file, or the built-in defaults when no path is set."""
    if not path:
        return Taxonomy()
    with open(path, "r", encoding="utf-8") as f:
        return taxonomy_from_dict(json.load(f))
