"""Collector settings loaded from the environment.

Validation collects every problem before failing so a misconfigured deploy
reports everything at once, and it happens before any item is fetched.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from jsonschema import Draft202012Validator

from teamcase.filtering.content_filter import DEFAULT_BLOG_TIERS, TierRule, tier_rules_from_config
from teamcase.ingestion.item_types import SOURCE_TYPES
from teamcase.pipeline.orchestrator import DEFAULT_PLANS, TierPlan

logger = logging.getLogger(__name__)


STRATEGY_RULES = "rules"
STRATEGY_ORACLE = "oracle"
STRATEGIES = (STRATEGY_RULES, STRATEGY_ORACLE)

DEFAULT_PG_DSN = "dbname=teamcase user=teamcase password=teamcasepass host=localhost port=5432"


PLAN_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["plans"],
    "properties": {
        "plans": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["tier", "terms", "quota"],
                "properties": {
                    "tier": {"type": "integer", "minimum": 1},
                    "terms": {"type": "array", "minItems": 1, "items": {"type": "string", "minLength": 1}},
                    "quota": {"type": "integer"},
                    "source_types": {"type": "array", "minItems": 1, "items": {"enum": list(SOURCE_TYPES)}},
                },
                "additionalProperties": False,
            },
        },
        "blog_tiers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["tier", "groups"],
                "properties": {
                    "tier": {"type": "integer", "minimum": 1},
                    "reason": {"type": "string"},
                    "groups": {
                        "type": "array",
                        "minItems": 1,
                        "items": {"type": "array", "minItems": 1, "items": {"type": "string", "minLength": 1}},
                    },
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}

_PLAN_VALIDATOR = Draft202012Validator(PLAN_SCHEMA)


def plans_from_dict(payload: Dict[str, Any]) -> Tuple[Tuple[TierPlan, ...], Tuple[TierRule, ...]]:
    errors = []
    for e in sorted(_PLAN_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    if errors:
        raise ValueError("Invalid collection plan:\n" + "\n".join(errors))
    plans = tuple(
        TierPlan(
            tier=int(p["tier"]),
            terms=tuple(p["terms"]),
            quota=int(p["quota"]),
            source_types=tuple(p.get("source_types") or ("blog",)),
        )
        for p in payload["plans"]
    )
    tiers = tier_rules_from_config(payload["blog_tiers"]) if payload.get("blog_tiers") else DEFAULT_BLOG_TIERS
    return plans, tiers


def load_plans(path: str = "") -> Tuple[Tuple[TierPlan, ...], Tuple[TierRule, ...]]:
    if not path:
        return DEFAULT_PLANS, DEFAULT_BLOG_TIERS
    with open(path, "r", encoding="utf-8") as f:
        return plans_from_dict(json.load(f))


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass
class Settings:
    naver_client_id: str
    naver_client_secret: str
    pg_dsn: str = DEFAULT_PG_DSN

    classifier_strategy: str = STRATEGY_RULES
    openai_api_key: str = ""
    ai_model: str = "gpt-4o-mini"

    search_display: int = 10
    search_delay_seconds: float = 0.5
    request_timeout: int = 30

    taxonomy_path: str = ""
    rule_tables_path: str = ""
    collection_plan_path: str = ""

    collect_mode: str = "once"
    collect_interval_hours: int = 6
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load and validate settings from environment variables."""
        settings = cls(
            naver_client_id=os.getenv("NAVER_CLIENT_ID", "").strip(),
            naver_client_secret=os.getenv("NAVER_CLIENT_SECRET", "").strip(),
            pg_dsn=os.getenv("PG_DSN", DEFAULT_PG_DSN),
            classifier_strategy=os.getenv("CLASSIFIER_STRATEGY", STRATEGY_RULES).strip().lower(),
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            ai_model=os.getenv("AI_MODEL", "gpt-4o-mini").strip(),
            search_display=int(os.getenv("SEARCH_DISPLAY", "10")),
            search_delay_seconds=float(os.getenv("SEARCH_DELAY_SECONDS", "0.5")),
            request_timeout=int(os.getenv("REQUEST_TIMEOUT", "30")),
            taxonomy_path=os.getenv("TAXONOMY_PATH", "").strip(),
            rule_tables_path=os.getenv("RULE_TABLES_PATH", "").strip(),
            collection_plan_path=os.getenv("COLLECTION_PLAN_PATH", "").strip(),
            collect_mode=(os.getenv("COLLECT_MODE") or "once").strip().lower(),
            collect_interval_hours=int(os.getenv("COLLECT_INTERVAL_HOURS", "6")),
            debug=_env_bool("DEBUG"),
        )
        settings._validate()
        return settings

    def _validate(self) -> None:
        errors: List[str] = []

        if not self.naver_client_id:
            errors.append("NAVER_CLIENT_ID is required")
        if not self.naver_client_secret:
            errors.append("NAVER_CLIENT_SECRET is required")
        if not self.pg_dsn:
            errors.append("PG_DSN is required")

        if self.classifier_strategy not in STRATEGIES:
            errors.append(f"CLASSIFIER_STRATEGY must be one of {', '.join(STRATEGIES)}")
        elif self.classifier_strategy == STRATEGY_ORACLE and not self.openai_api_key:
            errors.append("OPENAI_API_KEY is required when CLASSIFIER_STRATEGY=oracle")

        if not 1 <= self.search_display <= 100:
            errors.append("SEARCH_DISPLAY should be between 1 and 100")
        if self.search_delay_seconds < 0:
            errors.append("SEARCH_DELAY_SECONDS must not be negative")
        if self.request_timeout < 5 or self.request_timeout > 300:
            errors.append("REQUEST_TIMEOUT should be between 5 and 300 seconds")
        if self.collect_mode not in ("once", "scheduled", "daemon"):
            errors.append("COLLECT_MODE must be once, scheduled or daemon")
        if self.collect_interval_hours < 1:
            errors.append("COLLECT_INTERVAL_HOURS must be at least 1")

        for label, path in (
            ("TAXONOMY_PATH", self.taxonomy_path),
            ("RULE_TABLES_PATH", self.rule_tables_path),
            ("COLLECTION_PLAN_PATH", self.collection_plan_path),
        ):
            if path and not os.path.isfile(path):
                errors.append(f"{label} points at a missing file: {path}")

        if self.collection_plan_path and os.path.isfile(self.collection_plan_path):
            try:
                plans, _ = load_plans(self.collection_plan_path)
            except ValueError as e:
                errors.append(str(e))
            else:
                if any(p.quota <= 0 for p in plans):
                    errors.append("Every tier plan needs a positive quota")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ValueError(error_msg)

        logger.info(f"Configuration validated successfully. Classifier: {self.classifier_strategy}")
