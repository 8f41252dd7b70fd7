"""Collection run driver.

One run walks the tier plans in order. For each plan it searches every term
(and source type), pushes each hit through

    normalize -> dedup -> keyword tracking -> tier filter -> classify -> route -> store

and stops the plan as soon as its quota is reached. Only cases the filter put
in the plan's own tier count toward it; news hits take the plan's tier. Items
are handled strictly one after another; the only waits are the external calls
and a fixed pause after each search term.

Failure policy:
- a search that raises yields no items for that term (logged, run continues)
- a classifier "no result" drops the item
- StorageError is not caught here and ends the run
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from teamcase.analytics.keywords import KeywordFrequencyTracker, KeywordSuggestion
from teamcase.classification.types import Classifier
from teamcase.filtering.content_filter import TieredContentFilter
from teamcase.filtering.taxonomy import Taxonomy
from teamcase.ingestion.item_types import SOURCE_BLOG, SOURCE_NEWS, RawItem
from teamcase.ingestion.normalize import normalize_item
from teamcase.pipeline.dedup import Deduplicator
from teamcase.review.approval import ApprovalQueueEntry, ApprovalRouter, RoutingDecision
from teamcase.storage.case_record import CaseRecord

logger = logging.getLogger(__name__)


class SearchSource(Protocol):
    def search(self, term: str, source_type: str, *, count: int = 10, offset: int = 1, sort: str = "date") -> List[RawItem]: ...


class CaseStore(Protocol):
    def exists(self, link: str) -> bool: ...

    def insert_case(self, record: CaseRecord) -> bool: ...

    def enqueue(self, entry: ApprovalQueueEntry) -> None: ...

    def append_log(self, entry: Dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class TierPlan:
    tier: int
    terms: Tuple[str, ...]
    quota: int
    source_types: Tuple[str, ...] = (SOURCE_BLOG,)


DEFAULT_PLANS: Tuple[TierPlan, ...] = (
    TierPlan(tier=1, terms=("공모전 후기", "공모전 팀원", "해커톤 후기"), quota=20),
    TierPlan(tier=2, terms=("공모전", "공모전 팀"), quota=30),
    TierPlan(
        tier=3,
        terms=("팀플", "팀프로젝트", "조별과제", "무임승차", "프리라이더", "조장", "조원", "역할분담", "협업", "팀워크"),
        quota=50,
    ),
    TierPlan(tier=3, terms=("공모전 수상 팀", "대학생 팀 프로젝트"), quota=10, source_types=(SOURCE_NEWS,)),
)


@dataclass
class RunStats:
    fetched: int = 0
    fetch_failures: int = 0
    duplicates: int = 0
    filtered_out: int = 0
    not_relevant: int = 0
    stored: int = 0
    auto_approved: int = 0
    pending: int = 0
    queued: int = 0
    by_tier: Dict[int, int] = field(default_factory=dict)
    by_source: Dict[str, int] = field(default_factory=dict)
    by_status: Dict[str, int] = field(default_factory=dict)

    def record_stored(self, record: CaseRecord, routing: RoutingDecision) -> None:
        self.stored += 1
        if routing.auto_approved:
            self.auto_approved += 1
        else:
            self.pending += 1
        self.by_tier[record.tier] = self.by_tier.get(record.tier, 0) + 1
        self.by_source[record.source_type] = self.by_source.get(record.source_type, 0) + 1
        self.by_status[record.status] = self.by_status.get(record.status, 0) + 1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "fetched": self.fetched,
            "fetch_failures": self.fetch_failures,
            "duplicates": self.duplicates,
            "filtered_out": self.filtered_out,
            "not_relevant": self.not_relevant,
            "stored": self.stored,
            "auto_approved": self.auto_approved,
            "pending": self.pending,
            "queued": self.queued,
            # JSON object keys must be strings
            "by_tier": {str(k): v for k, v in sorted(self.by_tier.items())},
            "by_source": dict(self.by_source),
            "by_status": dict(self.by_status),
        }


@dataclass
class RunContext:
    """Everything mutable that belongs to exactly one run."""

    tracker: KeywordFrequencyTracker
    stats: RunStats = field(default_factory=RunStats)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class RunSummary:
    stats: RunStats
    suggestions: Tuple[KeywordSuggestion, ...]
    classifier: str
    started_at: datetime
    finished_at: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {
            "classifier": self.classifier,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "stats": self.stats.as_dict(),
            "suggestions": [{"term": s.term, "frequency": s.frequency} for s in self.suggestions],
        }


class CollectionOrchestrator:
    def __init__(
        self,
        *,
        search: SearchSource,
        store: CaseStore,
        classifier: Classifier,
        taxonomy: Taxonomy,
        content_filter: Optional[TieredContentFilter] = None,
        router: Optional[ApprovalRouter] = None,
        plans: Sequence[TierPlan] = DEFAULT_PLANS,
        search_count: int = 10,
        term_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.search = search
        self.store = store
        self.classifier = classifier
        self.taxonomy = taxonomy
        self.content_filter = content_filter or TieredContentFilter(taxonomy)
        self.router = router or ApprovalRouter()
        self.dedup = Deduplicator(store)
        self.plans = tuple(plans)
        self.search_count = search_count
        self.term_delay = term_delay
        self.sleep = sleep

    def new_context(self) -> RunContext:
        return RunContext(tracker=KeywordFrequencyTracker(self.taxonomy))

    def run(self, context: Optional[RunContext] = None) -> RunSummary:
        ctx = context or self.new_context()
        ctx.tracker.reset()
        ctx.stats = RunStats()
        ctx.started_at = datetime.now(timezone.utc)
        logger.info(f"Collection run started ({self.classifier.name} classifier, {len(self.plans)} tier plans)")

        for plan in self.plans:
            stored = self.run_plan(plan, ctx)
            logger.info(f"Tier plan {plan.tier}: stored {stored}/{plan.quota}")

        suggestions = ctx.tracker.generate_suggestions()
        for entry in self.router.keyword_entries(suggestions):
            self.store.enqueue(entry)
            ctx.stats.queued += 1

        summary = RunSummary(
            stats=ctx.stats,
            suggestions=tuple(suggestions),
            classifier=self.classifier.name,
            started_at=ctx.started_at,
            finished_at=datetime.now(timezone.utc),
        )
        self.store.append_log({"event": "run_summary", **summary.as_dict()})
        s = ctx.stats
        logger.info(
            f"Run finished: fetched={s.fetched} stored={s.stored} "
            f"(auto={s.auto_approved}, pending={s.pending}) duplicates={s.duplicates} "
            f"filtered={s.filtered_out} not_relevant={s.not_relevant} suggestions={len(suggestions)}"
        )
        return summary

    def run_plan(self, plan: TierPlan, ctx: RunContext) -> int:
        stored = 0
        if plan.quota <= 0:
            return stored
        for term in plan.terms:
            for source_type in plan.source_types:
                for raw in self._fetch(term, source_type, ctx):
                    record = self.process_item(raw, ctx, news_tier=plan.tier)
                    if record is not None and record.tier == plan.tier:
                        stored += 1
                    if stored >= plan.quota:
                        break
                if stored >= plan.quota:
                    break
            self.sleep(self.term_delay)
            if stored >= plan.quota:
                logger.info(f"Tier plan {plan.tier} quota reached at term [{term}]")
                break
        return stored

    def _fetch(self, term: str, source_type: str, ctx: RunContext) -> List[RawItem]:
        try:
            items = list(self.search.search(term, source_type, count=self.search_count))
        except Exception as e:
            ctx.stats.fetch_failures += 1
            logger.warning(f"Search failed for [{term}] ({source_type}): {e}")
            self.store.append_log({"event": "fetch_failed", "term": term, "source_type": source_type, "error": str(e)})
            return []
        ctx.stats.fetched += len(items)
        logger.debug(f"Fetched {len(items)} {source_type} items for [{term}]")
        return items

    def process_item(self, raw: RawItem, ctx: RunContext, *, news_tier: Optional[int] = None) -> Optional[CaseRecord]:
        """Run one hit through the pipeline. Returns the stored record, or None."""
        item = normalize_item(raw)
        if self.dedup.is_duplicate(item.link):
            ctx.stats.duplicates += 1
            return None

        ctx.tracker.observe(item)

        decision = self.content_filter.evaluate(item, news_tier=news_tier)
        if not decision.passed:
            ctx.stats.filtered_out += 1
            logger.debug(f"[drop] '{item.title[:60]}' filter: {decision.reason}")
            return None

        result = self.classifier.classify(item)
        if result is None or not result.is_relevant:
            ctx.stats.not_relevant += 1
            logger.debug(f"[drop] '{item.title[:60]}' not relevant")
            return None

        routing = self.router.route(item.link, result)
        record = CaseRecord.build(item, decision, result, routing, classifier=self.classifier.name)
        if not self.store.insert_case(record):
            ctx.stats.duplicates += 1
            logger.info(f"[drop] '{item.title[:60]}' stored concurrently by another run")
            return None

        for entry in routing.queue_entries:
            self.store.enqueue(entry)
            ctx.stats.queued += 1
        ctx.stats.record_stored(record, routing)
        logger.info(f"[stored] tier={record.tier} status={record.status} '{item.title[:60]}'")
        return record
