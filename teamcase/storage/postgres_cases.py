"""Postgres-backed case store.

Kept as plain psycopg + SQL. Every database error surfaces as StorageError,
which the orchestrator treats as fatal for the run.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

import psycopg
from psycopg.types.json import Jsonb

from teamcase.review.approval import ApprovalQueueEntry
from teamcase.storage.case_record import CaseRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the case store cannot be read or written."""
    pass


class PostgresCaseStore:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        try:
            with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    yield cur
        except psycopg.Error as e:
            raise StorageError(str(e)) from e

    def exists(self, link: str) -> bool:
        with self._cursor() as cur:
            cur.execute("SELECT 1 FROM cases WHERE link = %s LIMIT 1", (link,))
            return cur.fetchone() is not None

    def insert_case(self, record: CaseRecord) -> bool:
        """Insert the record unless its link is already stored.

        Returns False when the link already existed (another run got there first).
        """
        row = record.to_row()
        row["classification"] = Jsonb(row["classification"])
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO cases (
                  link, title, snippet, source_type, search_term, published_at, source_name,
                  tier, filter_reason, classifier,
                  actor, actor_confidence, team_type, team_type_category, team_type_confidence,
                  primary_category, primary_category_confidence,
                  excerpt, is_positive, classification, status, needs_review, reviewed_at, collected_at
                )
                VALUES (
                  %(link)s, %(title)s, %(snippet)s, %(source_type)s, %(search_term)s, %(published_at)s, %(source_name)s,
                  %(tier)s, %(filter_reason)s, %(classifier)s,
                  %(actor)s, %(actor_confidence)s, %(team_type)s, %(team_type_category)s, %(team_type_confidence)s,
                  %(primary_category)s, %(primary_category_confidence)s,
                  %(excerpt)s, %(is_positive)s, %(classification)s, %(status)s, %(needs_review)s, %(reviewed_at)s,
                  COALESCE(%(collected_at)s, now())
                )
                ON CONFLICT (link) DO NOTHING
                RETURNING id
                """,
                row,
            )
            return cur.fetchone() is not None

    def enqueue(self, entry: ApprovalQueueEntry) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO approval_queue (kind, link, dimension, term, frequency, options)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.kind,
                    entry.link,
                    entry.dimension,
                    entry.term,
                    entry.frequency,
                    Jsonb(list(entry.options)),
                ),
            )

    def append_log(self, entry: Dict[str, Any]) -> None:
        event = str(entry.get("event") or "log")
        with self._cursor() as cur:
            cur.execute(
                "INSERT INTO collection_logs (event, payload) VALUES (%s, %s)",
                (event, Jsonb(entry)),
            )

    def count_cases(self) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM cases")
            return int(cur.fetchone()[0] or 0)
