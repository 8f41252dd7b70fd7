"""Analysis oracle response contract.

The oracle answers in free-form text that should contain one JSON object.
This module:
- Pulls the first balanced {...} block out of the reply (prose and code
  fences around it are ignored)
- Validates it against a JSON Schema
- Converts it into a ClassificationResult

Field names follow the camelCase the prompt asks for.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

from teamcase.classification.types import (
    Candidate,
    ClassificationResult,
    LabeledConfidence,
    Reasoning,
    TeamTypeLabel,
)


_LABEL_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["label", "confidence"],
    "properties": {
        "label": {"type": "string", "minLength": 1},
        "confidence": {"type": "integer", "minimum": 0, "maximum": 100},
        "alternatives": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": True,
}

ORACLE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["isRelevant"],
    "properties": {
        "isRelevant": {"type": "boolean"},
        "actor": _LABEL_SCHEMA,
        "teamType": {
            **_LABEL_SCHEMA,
            "required": ["label", "confidence", "category"],
            "properties": {**_LABEL_SCHEMA["properties"], "category": {"type": "string", "minLength": 1}},
        },
        "primaryCategory": _LABEL_SCHEMA,
        "excerpt": {"type": "string"},
        "reasoning": {
            "type": "object",
            "properties": {
                "actorReason": {"type": "string"},
                "typeReason": {"type": "string"},
                "isPositive": {"type": "boolean"},
            },
            "additionalProperties": True,
        },
    },
    # A relevant verdict must carry every dimension.
    "if": {"properties": {"isRelevant": {"const": True}}},
    "then": {"required": ["actor", "teamType", "primaryCategory"]},
    "additionalProperties": True,
}


_VALIDATOR = Draft202012Validator(ORACLE_RESPONSE_SCHEMA)


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced-brace substring of `text`, or None.

    Braces inside JSON string literals are skipped.
    """
    if not text:
        return None
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def parse_oracle_reply(text: str) -> Optional[Dict[str, Any]]:
    """Extract and decode the JSON object from a reply; None if there is none."""
    block = extract_json_object(text)
    if block is None:
        return None
    try:
        payload = json.loads(block)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def validate_oracle_response(payload: Dict[str, Any]) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


def _labeled(block: Dict[str, Any]) -> LabeledConfidence:
    label = str(block["label"]).strip()
    confidence = int(block["confidence"])
    return LabeledConfidence(
        label=label,
        confidence=confidence,
        alternatives=tuple(str(a) for a in block.get("alternatives") or []),
        candidates=(Candidate(label, confidence),),
    )


def result_from_payload(payload: Dict[str, Any]) -> ClassificationResult:
    """Build a ClassificationResult from a payload that already passed validation."""
    team = payload["teamType"]
    team_label = _labeled(team)
    reasoning = payload.get("reasoning") or {}
    return ClassificationResult(
        actor=_labeled(payload["actor"]),
        team_type=TeamTypeLabel(
            label=team_label.label,
            confidence=team_label.confidence,
            alternatives=team_label.alternatives,
            candidates=team_label.candidates,
            category=str(team["category"]).strip(),
        ),
        primary_category=_labeled(payload["primaryCategory"]),
        excerpt=str(payload.get("excerpt") or ""),
        reasoning=Reasoning(
            actor_reason=str(reasoning.get("actorReason") or ""),
            type_reason=str(reasoning.get("typeReason") or ""),
            is_positive=bool(reasoning.get("isPositive", False)),
        ),
        is_relevant=bool(payload["isRelevant"]),
    )
