import unittest
from unittest.mock import patch

import requests

from teamcase.classification.rule_based import RuleBasedClassifier
from teamcase.classification.types import Classifier
from teamcase.filtering.taxonomy import Taxonomy
from teamcase.ingestion.item_types import RawItem
from teamcase.ingestion.naver_search import NaverSearchClient, SearchError
from teamcase.pipeline.orchestrator import CollectionOrchestrator, TierPlan
from teamcase.storage.postgres_cases import StorageError


def _raw(link, title, snippet="", source_type="blog", term="공모전"):
    return RawItem(title=title, snippet=snippet, link=link, source_type=source_type, search_term=term)


class FakeSearch:
    def __init__(self, results=None, failing=()):
        self.results = results or {}
        self.failing = set(failing)
        self.calls = []

    def search(self, term, source_type, *, count=10, offset=1, sort="date"):
        self.calls.append((term, source_type))
        if term in self.failing:
            raise SearchError("search backend down")
        return list(self.results.get(term, []))


class FakeStore:
    def __init__(self, fail_on_insert=False, taken_elsewhere=()):
        self.records = {}
        self.queue = []
        self.logs = []
        self.fail_on_insert = fail_on_insert
        # links another writer inserts between our exists() and insert_case()
        self.taken_elsewhere = set(taken_elsewhere)

    def exists(self, link):
        return link in self.records

    def insert_case(self, record):
        if self.fail_on_insert:
            raise StorageError("disk full")
        if record.link in self.records or record.link in self.taken_elsewhere:
            return False
        self.records[record.link] = record
        return True

    def enqueue(self, entry):
        self.queue.append(entry)

    def append_log(self, entry):
        self.logs.append(entry)


class NeverRelevant(Classifier):
    name = "never"

    def classify(self, item):
        return None


def _orchestrator(search, store, plans, classifier=None):
    return CollectionOrchestrator(
        search=search,
        store=store,
        classifier=classifier or RuleBasedClassifier(),
        taxonomy=Taxonomy(),
        plans=plans,
        term_delay=0.0,
        sleep=lambda s: None,
    )


SCENARIO = _raw("https://x/1", "공모전 참가 후기", "같이 나간 친구가 무임승차를 했다")


class TestCollectionOrchestrator(unittest.TestCase):
    def test_contest_review_end_to_end(self):
        store = FakeStore()
        search = FakeSearch({"공모전": [SCENARIO]})
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("공모전",), quota=5)]).run()

        record = store.records["https://x/1"]
        self.assertEqual(record.tier, 1)
        self.assertEqual(record.status, "pending-actor")
        self.assertEqual(record.needs_review, frozenset({"actor"}))
        self.assertIsNone(record.reviewed_at)
        self.assertEqual(record.classification.actor.label, "학생")
        self.assertEqual(record.classification.actor.confidence, 60)
        self.assertEqual(record.classification.team_type.label, "무임승차형")
        self.assertEqual(record.classifier, "rules")
        self.assertEqual(store.queue, [])
        self.assertEqual(summary.stats.stored, 1)
        self.assertEqual(summary.stats.pending, 1)
        self.assertEqual(summary.stats.by_tier, {1: 1})
        self.assertEqual(summary.stats.by_source, {"blog": 1})
        self.assertEqual(store.logs[-1]["event"], "run_summary")

    def test_second_run_stores_nothing_new(self):
        store = FakeStore()
        items = [
            SCENARIO,
            _raw("https://x/2", "공모전 후기", "팀워크가 좋았다"),
            _raw("https://x/3", "팀플 무임승차 썰"),
        ]
        plans = [TierPlan(tier=1, terms=("공모전",), quota=10)]
        first = _orchestrator(FakeSearch({"공모전": items}), store, plans).run()
        second = _orchestrator(FakeSearch({"공모전": items}), store, plans).run()
        self.assertEqual(first.stats.stored, 3)
        self.assertEqual(second.stats.stored, 0)
        self.assertEqual(second.stats.duplicates, 3)
        self.assertEqual(len(store.records), 3)

    def test_quota_stops_the_tier(self):
        store = FakeStore()
        search = FakeSearch(
            {
                "a": [
                    _raw("https://x/0", "오늘 점심"),
                    _raw("https://x/1", "공모전 후기"),
                    _raw("https://x/2", "공모전 준비"),
                    _raw("https://x/3", "공모전 회고"),
                    _raw("https://x/5", "공모전 참가 후기"),
                ],
                "b": [_raw("https://x/4", "공모전 후기")],
            }
        )
        slept = []
        orch = _orchestrator(search, store, [TierPlan(tier=1, terms=("a", "b"), quota=2)])
        orch.sleep = slept.append
        summary = orch.run()
        # x/2 is a tier-2 case: stored, but not counted toward the tier-1 quota
        self.assertEqual(sorted(store.records), ["https://x/1", "https://x/2", "https://x/3"])
        self.assertEqual(summary.stats.filtered_out, 1)
        self.assertEqual(summary.stats.by_tier, {1: 2, 2: 1})
        self.assertEqual(search.calls, [("a", "blog")])
        self.assertEqual(len(slept), 1)

    def test_other_tiers_do_not_fill_the_quota(self):
        store = FakeStore()
        items = [_raw(f"https://x/{i}", "팀플 무임승차 썰") for i in range(3)]
        search = FakeSearch({"a": items, "b": [SCENARIO]})
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("a", "b"), quota=1)]).run()
        self.assertEqual(summary.stats.by_tier, {3: 3, 1: 1})
        self.assertEqual(search.calls, [("a", "blog"), ("b", "blog")])

    def test_news_cases_take_the_plan_tier(self):
        store = FakeStore()
        news = _raw("https://press.example.com/1", "삼성 공모전 수상", "삼성 주최 대회에서 삼성 장학금", source_type="news")
        search = FakeSearch({"공모전 수상 팀": [news]})
        plan = TierPlan(tier=3, terms=("공모전 수상 팀",), quota=1, source_types=("news",))
        summary = _orchestrator(search, store, [plan]).run()
        self.assertEqual(store.records["https://press.example.com/1"].tier, 3)
        self.assertEqual(summary.stats.by_tier, {3: 1})
        self.assertEqual(summary.stats.by_source, {"news": 1})

    def test_fetch_failure_moves_to_next_term(self):
        store = FakeStore()
        search = FakeSearch({"b": [SCENARIO]}, failing={"a"})
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("a", "b"), quota=5)]).run()
        self.assertEqual(summary.stats.fetch_failures, 1)
        self.assertEqual(summary.stats.stored, 1)
        self.assertTrue(any(log["event"] == "fetch_failed" and log["term"] == "a" for log in store.logs))

    @patch("teamcase.ingestion.naver_search.requests.get")
    def test_naver_transport_error_is_counted(self, get):
        get.side_effect = requests.exceptions.ConnectionError("boom")
        store = FakeStore()
        search = NaverSearchClient(client_id="id", client_secret="secret")
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("공모전 후기", "해커톤 후기"), quota=5)]).run()
        self.assertEqual(summary.stats.fetch_failures, 2)
        self.assertEqual([log["event"] for log in store.logs], ["fetch_failed", "fetch_failed", "run_summary"])
        self.assertEqual(store.logs[0]["term"], "공모전 후기")

    def test_storage_failure_aborts_run(self):
        store = FakeStore(fail_on_insert=True)
        search = FakeSearch({"공모전": [SCENARIO]})
        with self.assertRaises(StorageError):
            _orchestrator(search, store, [TierPlan(tier=1, terms=("공모전",), quota=5)]).run()

    def test_lost_insert_race_counts_as_duplicate(self):
        store = FakeStore(taken_elsewhere={"https://x/1"})
        search = FakeSearch({"공모전": [SCENARIO]})
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("공모전",), quota=5)]).run()
        self.assertEqual(summary.stats.stored, 0)
        self.assertEqual(summary.stats.duplicates, 1)
        self.assertEqual(store.queue, [])

    def test_not_relevant_items_are_dropped(self):
        store = FakeStore()
        search = FakeSearch({"공모전": [SCENARIO]})
        plans = [TierPlan(tier=1, terms=("공모전",), quota=5)]
        summary = _orchestrator(search, store, plans, classifier=NeverRelevant()).run()
        self.assertEqual(summary.stats.not_relevant, 1)
        self.assertEqual(store.records, {})

    def test_ambiguous_item_gets_disambiguation_entries(self):
        store = FakeStore()
        search = FakeSearch({"공모전": [_raw("https://x/9", "공모전 후기", "조장이 혼자 다 했다")]})
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("공모전",), quota=5)]).run()
        dims = sorted(e.dimension for e in store.queue)
        self.assertEqual(dims, ["actor", "team_type"])
        self.assertEqual(summary.stats.queued, 2)

    def test_keyword_suggestions_are_queued(self):
        store = FakeStore()
        items = [_raw(f"https://x/{i}", "마감직전 메모") for i in range(10)]
        search = FakeSearch({"공모전": items})
        summary = _orchestrator(search, store, [TierPlan(tier=1, terms=("공모전",), quota=5)]).run()
        self.assertEqual(summary.stats.filtered_out, 10)
        keyword_entries = [e for e in store.queue if e.kind == "keyword"]
        self.assertIn(("마감직전", 10), [(e.term, e.frequency) for e in keyword_entries])
        self.assertIn("마감직전", [s.term for s in summary.suggestions])

    def test_reused_context_starts_fresh(self):
        items = [_raw(f"https://x/{i}", "마감직전 공모전 후기") for i in range(6)]
        plans = [TierPlan(tier=1, terms=("공모전",), quota=10)]
        orch = _orchestrator(FakeSearch({"공모전": items}), FakeStore(), plans)
        ctx = orch.new_context()
        first = orch.run(ctx)
        orch.store = FakeStore()
        orch.dedup.store = orch.store
        second = orch.run(ctx)
        self.assertEqual(first.stats.stored, 6)
        self.assertEqual(second.stats.stored, 6)
        self.assertEqual(second.stats.by_tier, {1: 6})
        self.assertIs(ctx.stats, second.stats)
        self.assertEqual(second.suggestions, ())


if __name__ == "__main__":
    unittest.main()
