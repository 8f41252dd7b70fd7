#!/usr/bin/env python3
"""Team-project case collection worker.

Runs one collection (or scheduled collections):
- searches Naver blog/news for the configured terms, tier by tier
- filters, classifies and routes every new hit
- stores cases + review-queue entries in Postgres

Exit code 1 on configuration or storage failure; whatever was stored before
a storage failure stays stored and is skipped by the next run.
"""

from __future__ import annotations

import logging
import os
import sys
import time

import psycopg
import schedule
from dotenv import load_dotenv

from teamcase.classification.delegated import DelegatedClassifier
from teamcase.classification.rule_based import RuleBasedClassifier
from teamcase.classification.rule_tables import load_rule_tables
from teamcase.classification.types import Classifier
from teamcase.filtering.content_filter import TieredContentFilter
from teamcase.filtering.taxonomy import load_taxonomy
from teamcase.ingestion.naver_search import NaverSearchClient
from teamcase.pipeline.orchestrator import CollectionOrchestrator, RunSummary
from teamcase.settings import STRATEGY_ORACLE, Settings, load_plans
from teamcase.storage.postgres_cases import PostgresCaseStore, StorageError
from teamcase.storage.postgres_schema import ensure_postgres_schema

logger = logging.getLogger("collect_cases_worker")


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(os.getenv("LOG_FILE", "collector.log")),
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_classifier(settings: Settings) -> Classifier:
    """Pick the classifier strategy from configuration."""
    if settings.classifier_strategy == STRATEGY_ORACLE:
        return DelegatedClassifier.from_api_key(
            settings.openai_api_key,
            model=settings.ai_model,
            timeout=float(settings.request_timeout),
        )
    return RuleBasedClassifier(load_rule_tables(settings.rule_tables_path))


def build_orchestrator(settings: Settings, store=None, search=None) -> CollectionOrchestrator:
    taxonomy = load_taxonomy(settings.taxonomy_path)
    plans, blog_tiers = load_plans(settings.collection_plan_path)
    return CollectionOrchestrator(
        search=search
        or NaverSearchClient(
            client_id=settings.naver_client_id,
            client_secret=settings.naver_client_secret,
            timeout=settings.request_timeout,
        ),
        store=store or PostgresCaseStore(settings.pg_dsn),
        classifier=build_classifier(settings),
        taxonomy=taxonomy,
        content_filter=TieredContentFilter(taxonomy, blog_tiers=blog_tiers),
        plans=plans,
        search_count=settings.search_display,
        term_delay=settings.search_delay_seconds,
    )


def run_once(settings: Settings) -> RunSummary:
    try:
        ensure_postgres_schema(settings.pg_dsn)
    except psycopg.Error as e:
        raise StorageError(f"schema setup failed: {e}") from e
    orchestrator = build_orchestrator(settings)
    summary = orchestrator.run()
    stats = summary.stats
    logger.info(
        f"[collect] stored={stats.stored} auto_approved={stats.auto_approved} pending={stats.pending} "
        f"by_tier={stats.as_dict()['by_tier']} by_source={stats.by_source} total_cases={orchestrator.store.count_cases()}"
    )
    for s in summary.suggestions:
        logger.info(f"[suggest] {s.term} x{s.frequency}")
    return summary


def run_scheduled(settings: Settings) -> None:
    schedule.every(settings.collect_interval_hours).hours.do(run_once, settings)
    run_once(settings)
    while True:
        schedule.run_pending()
        time.sleep(30)


def main() -> int:
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ValueError as e:
        configure_logging()
        logger.error(f"Configuration error:\n{e}")
        return 1
    configure_logging(settings.debug)

    try:
        if settings.collect_mode in ("scheduled", "daemon"):
            run_scheduled(settings)
        else:
            run_once(settings)
    except StorageError as e:
        logger.error(f"Storage failure, run aborted: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
