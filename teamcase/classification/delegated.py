"""Classifier that delegates to an LLM analysis oracle.

The oracle sees only the normalized title and snippet and must answer with the
JSON structure described in SYSTEM_PROMPT. Anything short of a valid, relevant
answer (transport error, prose without JSON, schema violation, or an explicit
isRelevant=false) means "no result" and the item is dropped upstream.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import openai

from teamcase.classification.types import ClassificationResult, Classifier
from teamcase.contracts.oracle_response import (
    parse_oracle_reply,
    result_from_payload,
    validate_oracle_response,
)
from teamcase.ingestion.item_types import NormalizedItem

logger = logging.getLogger(__name__)


DEFAULT_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = """You analyse Korean blog and news snippets about team projects (팀플, 조별과제, 공모전 팀 활동).
Decide whether the snippet describes a concrete team-work experience and classify it.

Answer with ONE JSON object and nothing else:
{
  "isRelevant": true,
  "actor": {"label": "학생|직장인|리더|팀원|교수자|개발자|기타", "confidence": 0-100, "alternatives": []},
  "teamType": {"label": "무임승차형|과도헌신형|주도형|플래너형|협력형|갈등형|...|기타", "category": "기여도|리더십|계획|소통|갈등|성과|기타", "confidence": 0-100, "alternatives": []},
  "primaryCategory": {"label": "팀플|공모전|동아리|직장|스터디|창업|...|기타", "confidence": 0-100, "alternatives": []},
  "excerpt": "the single most telling sentence, verbatim",
  "reasoning": {"actorReason": "...", "typeReason": "...", "isPositive": true}
}
If the snippet is advertising, off-topic, or too vague, answer {"isRelevant": false}.
Confidence is an integer. Use 80 or more only when the snippet states it explicitly."""


class DelegatedClassifier(Classifier):
    name = "oracle"

    def __init__(self, client: Any, *, model: str = DEFAULT_MODEL, temperature: float = 0.2, max_tokens: int = 600):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_api_key(cls, api_key: str, *, model: str = DEFAULT_MODEL, timeout: float = 30.0) -> "DelegatedClassifier":
        return cls(openai.OpenAI(api_key=api_key, timeout=timeout), model=model)

    def analyze(self, title: str, snippet: str) -> Optional[str]:
        """Raw oracle reply text, or None if the call failed."""
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"제목: {title}\n내용: {snippet}"},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            logger.warning(f"Oracle call failed: {e}")
            return None
        try:
            return resp.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            logger.warning(f"Oracle returned an unexpected response shape: {e}")
            return None

    def classify(self, item: NormalizedItem) -> Optional[ClassificationResult]:
        reply = self.analyze(item.title, item.snippet)
        if reply is None:
            return None
        payload = parse_oracle_reply(reply)
        if payload is None:
            logger.warning(f"No JSON object in oracle reply for {item.link}: {reply[:200]!r}")
            return None
        errors = validate_oracle_response(payload)
        if errors:
            logger.warning(f"Oracle reply for {item.link} failed validation: {'; '.join(errors)}")
            return None
        if not payload.get("isRelevant"):
            logger.debug(f"Oracle marked {item.link} as not relevant")
            return None
        return result_from_payload(payload)
