"""Tiered content filter.

Two rule families, picked by source type:
- blog: ordered tier rules, first match wins
- news: an action-keyword gate followed by a recurring-entity check

Everything runs on the lower-cased normalized title + snippet. Rejected items
are dropped by the caller without being stored or counted toward a quota.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from teamcase.filtering.taxonomy import Taxonomy
from teamcase.ingestion.item_types import SOURCE_BLOG, SOURCE_NEWS, NormalizedItem


@dataclass(frozen=True)
class FilterDecision:
    passed: bool
    tier: int
    reason: str


def _reject(reason: str) -> FilterDecision:
    return FilterDecision(passed=False, tier=0, reason=reason)


@dataclass(frozen=True)
class TierRule:
    """A tier matches when every group has at least one of its terms in the text.

    A single-term group is therefore an "all of" requirement and a multi-term
    group an "any of" requirement.
    """

    tier: int
    reason: str
    groups: Tuple[Tuple[str, ...], ...]

    def matches(self, text: str) -> bool:
        if not self.groups:
            return False
        return all(any(term in text for term in group) for group in self.groups)


REVIEW_TERMS = ("후기", "리뷰", "회고", "경험담", "참가")
TEAM_TERMS = ("팀플", "팀프로젝트", "조별과제")
BEHAVIOUR_TERMS = ("무임승차", "프리라이더", "역할분담", "갈등", "조장", "잠수")

DEFAULT_BLOG_TIERS: Tuple[TierRule, ...] = (
    TierRule(tier=1, reason="공모전 + 후기", groups=(("공모전",), REVIEW_TERMS)),
    TierRule(tier=2, reason="공모전", groups=(("공모전",),)),
    TierRule(tier=3, reason="팀플 + 행동 사례", groups=(TEAM_TERMS, BEHAVIOUR_TERMS)),
)

NEWS_ACTION_TERMS = ("수상", "선정", "개최", "발표", "출범", "모집")

NEWS_STOPWORDS = {
    "있다", "했다", "한다", "이번", "대한", "통해", "위해", "지난", "올해", "이날",
    "기자", "뉴스", "밝혔다", "말했다", "그리고", "하지만", "또한", "관련", "이후", "오는",
}

_NEWS_TOKEN_RE = re.compile(r"[가-힣]{2,4}")

DEFAULT_NEWS_TIER = 1
MIN_ENTITY_COUNT = 3


def tier_rules_from_config(entries: Iterable[Dict[str, Any]]) -> Tuple[TierRule, ...]:
    """Build tier rules from plain dicts: {"tier": 1, "reason": "...", "groups": [["a"], ["b", "c"]]}."""
    rules: List[TierRule] = []
    for e in entries:
        groups = tuple(tuple(str(t).strip().lower() for t in g if str(t).strip()) for g in e.get("groups") or [])
        rules.append(TierRule(tier=int(e["tier"]), reason=str(e.get("reason") or f"tier {e['tier']}"), groups=groups))
    return tuple(rules)


class TieredContentFilter:
    def __init__(
        self,
        taxonomy: Taxonomy,
        *,
        blog_tiers: Sequence[TierRule] = DEFAULT_BLOG_TIERS,
        news_action_terms: Sequence[str] = NEWS_ACTION_TERMS,
        news_stopwords: Iterable[str] = NEWS_STOPWORDS,
        news_tier: int = DEFAULT_NEWS_TIER,
        min_entity_count: int = MIN_ENTITY_COUNT,
    ):
        tiers = [r.tier for r in blog_tiers]
        if any(t < 1 for t in tiers) or len(set(tiers)) != len(tiers):
            raise ValueError(f"Tier numbers must be distinct and >= 1, got {tiers}")
        self.taxonomy = taxonomy
        self.blog_tiers: Tuple[TierRule, ...] = tuple(sorted(blog_tiers, key=lambda r: r.tier))
        self.news_action_terms = tuple(news_action_terms)
        self.news_stopwords = set(news_stopwords)
        self.news_tier = news_tier
        self.min_entity_count = min_entity_count

    def evaluate(self, item: NormalizedItem, *, news_tier: Optional[int] = None) -> FilterDecision:
        """Blog hits get the tier of the first matching rule; news hits that pass
        the gate get `news_tier` (the tier of the plan that searched them) or the
        filter default.
        """
        text = item.text
        excluded = self._excluded_term(text)
        if excluded:
            return _reject(f"excluded term: {excluded}")
        if item.source_type == SOURCE_BLOG:
            return self.evaluate_tiers(text)
        if item.source_type == SOURCE_NEWS:
            return self.evaluate_news(text, tier=news_tier)
        return _reject(f"unknown source type: {item.source_type}")

    def _excluded_term(self, text: str) -> Optional[str]:
        for term in self.taxonomy.excluded_terms:
            if term and term in text:
                return term
        return None

    def evaluate_tiers(self, text: str) -> FilterDecision:
        for rule in self.blog_tiers:
            if rule.matches(text):
                return FilterDecision(passed=True, tier=rule.tier, reason=rule.reason)
        return _reject("no tier matched")

    def evaluate_news(self, text: str, *, tier: Optional[int] = None) -> FilterDecision:
        if not any(term in text for term in self.news_action_terms):
            return _reject("no action keyword")
        recurring = self.recurring_entities(text)
        if not recurring:
            return _reject(f"no token repeated {self.min_entity_count}+ times")
        listed = ", ".join(f"{tok}({n})" for tok, n in recurring)
        return FilterDecision(passed=True, tier=tier or self.news_tier, reason=f"entity: {listed}")

    def recurring_entities(self, text: str) -> List[Tuple[str, int]]:
        counts = Counter(t for t in _NEWS_TOKEN_RE.findall(text) if t not in self.news_stopwords)
        return [(tok, n) for tok, n in counts.most_common() if n >= self.min_entity_count]
