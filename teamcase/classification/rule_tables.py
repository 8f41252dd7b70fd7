"""Keyword rule tables for the rule-based classifier.

Each table row is (label_id, keywords, confidence, category). Tables are plain
data: the built-in defaults below can be replaced wholesale by a JSON file with
the same shape (see `load_rule_tables`).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from jsonschema import Draft202012Validator


@dataclass(frozen=True)
class RuleEntry:
    label_id: str
    keywords: Tuple[str, ...]
    confidence: int
    category: str = ""


@dataclass(frozen=True)
class RuleTables:
    primary_categories: Tuple[RuleEntry, ...]
    actors: Tuple[RuleEntry, ...]
    team_types: Tuple[RuleEntry, ...]
    positive_cues: Tuple[str, ...] = ()
    negative_cues: Tuple[str, ...] = ()


def _rows(rows: List[Tuple[str, Tuple[str, ...], int, str]]) -> Tuple[RuleEntry, ...]:
    return tuple(RuleEntry(label_id=l, keywords=k, confidence=c, category=cat) for l, k, c, cat in rows)


# 12 topic buckets
DEFAULT_PRIMARY_CATEGORIES = _rows([
    ("팀플", ("팀플", "팀프로젝트", "조별과제", "조모임"), 80, ""),
    ("공모전", ("공모전", "해커톤", "경진대회"), 80, ""),
    ("동아리", ("동아리", "학회", "연합회"), 75, ""),
    ("직장", ("회사", "직장", "업무", "부서"), 75, ""),
    ("스터디", ("스터디", "독서모임"), 75, ""),
    ("창업", ("창업", "스타트업"), 75, ""),
    ("대외활동", ("봉사", "서포터즈", "기자단"), 70, ""),
    ("스포츠", ("축구", "농구", "야구", "시합"), 70, ""),
    ("게임", ("게임", "길드", "레이드"), 70, ""),
    ("연구", ("연구실", "논문", "랩실"), 70, ""),
    ("군대", ("군대", "부대", "훈련소"), 70, ""),
    ("원격협업", ("notion", "slack", "zoom", "원격"), 70, ""),
])

DEFAULT_ACTORS = _rows([
    ("학생", ("학생", "대학", "과제", "공모전", "수업", "학기", "동기"), 60, ""),
    ("직장인", ("직장", "회사", "상사", "동료", "신입"), 70, ""),
    ("리더", ("조장", "팀장", "리더", "반장"), 75, ""),
    ("팀원", ("조원", "팀원"), 65, ""),
    ("교수자", ("교수", "강사", "조교"), 70, ""),
    ("개발자", ("개발자", "코딩", "github"), 70, ""),
])

# 16 behaviour labels in 6 categories
DEFAULT_TEAM_TYPES = _rows([
    ("무임승차형", ("무임승차", "프리라이더", "안 함", "안함"), 85, "기여도"),
    ("과도헌신형", ("혼자", "다 했", "다했", "독박"), 75, "기여도"),
    ("묵묵형", ("묵묵히", "맡은 일", "조용히"), 70, "기여도"),
    ("주도형", ("조장", "리더", "팀장", "이끌"), 80, "리더십"),
    ("독단형", ("독단", "마음대로", "독재"), 80, "리더십"),
    ("방관형", ("방관", "눈치만"), 75, "리더십"),
    ("플래너형", ("계획", "일정", "플래너"), 70, "계획"),
    ("마감형", ("마감", "벼락치기", "밤샘"), 75, "계획"),
    ("완벽주의형", ("완벽", "디테일", "꼼꼼"), 80, "계획"),
    ("협력형", ("협업", "팀워크", "협력"), 80, "소통"),
    ("소통형", ("소통", "회의", "단톡"), 75, "소통"),
    ("잠수형", ("잠수", "연락두절", "읽씹"), 85, "소통"),
    ("갈등형", ("갈등", "싸움", "의견충돌"), 80, "갈등"),
    ("불만형", ("불만", "뒷담", "험담"), 70, "갈등"),
    ("성장형", ("성장", "배웠", "배운 점"), 75, "성과"),
    ("수상형", ("수상", "입상"), 85, "성과"),
])

DEFAULT_POSITIVE_CUES = ("좋았", "성장", "배웠", "수상", "만족", "뿌듯", "감사")
DEFAULT_NEGATIVE_CUES = ("무임승차", "갈등", "싸움", "불만", "힘들", "최악", "짜증", "잠수")


def default_rule_tables() -> RuleTables:
    return RuleTables(
        primary_categories=DEFAULT_PRIMARY_CATEGORIES,
        actors=DEFAULT_ACTORS,
        team_types=DEFAULT_TEAM_TYPES,
        positive_cues=DEFAULT_POSITIVE_CUES,
        negative_cues=DEFAULT_NEGATIVE_CUES,
    )


_ENTRY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["label_id", "keywords", "confidence"],
    "properties": {
        "label_id": {"type": "string", "minLength": 1},
        "keywords": {"type": "array", "minItems": 1, "items": {"type": "string", "minLength": 1}},
        "confidence": {"type": "integer", "minimum": 0, "maximum": 100},
        "category": {"type": "string"},
    },
    "additionalProperties": False,
}

RULE_TABLES_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["primary_categories", "actors", "team_types"],
    "properties": {
        "primary_categories": {"type": "array", "items": _ENTRY_SCHEMA},
        "actors": {"type": "array", "items": _ENTRY_SCHEMA},
        "team_types": {"type": "array", "items": _ENTRY_SCHEMA},
        "positive_cues": {"type": "array", "items": {"type": "string"}},
        "negative_cues": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}

_VALIDATOR = Draft202012Validator(RULE_TABLES_SCHEMA)


def rule_tables_from_dict(payload: Dict[str, Any]) -> RuleTables:
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    if errors:
        raise ValueError("Invalid rule tables:\n" + "\n".join(errors))

    def entries(key: str) -> Tuple[RuleEntry, ...]:
        return tuple(
            RuleEntry(
                label_id=row["label_id"],
                keywords=tuple(k.lower() for k in row["keywords"]),
                confidence=int(row["confidence"]),
                category=row.get("category", ""),
            )
            for row in payload[key]
        )

    return RuleTables(
        primary_categories=entries("primary_categories"),
        actors=entries("actors"),
        team_types=entries("team_types"),
        positive_cues=tuple(payload.get("positive_cues", DEFAULT_POSITIVE_CUES)),
        negative_cues=tuple(payload.get("negative_cues", DEFAULT_NEGATIVE_CUES)),
    )


def load_rule_tables(path: str = "") -> RuleTables:
    if not path:
        return default_rule_tables()
    with open(path, "r", encoding="utf-8") as f:
        return rule_tables_from_dict(json.load(f))
