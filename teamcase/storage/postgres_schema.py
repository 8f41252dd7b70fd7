"""Postgres schema for the case collector.

Schema creation is idempotent (CREATE IF NOT EXISTS) and safe to run at the
start of every collection.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Cases: one row per link. The UNIQUE constraint is what makes
    # insert-if-absent atomic across concurrent runs.
    """
    CREATE TABLE IF NOT EXISTS cases (
      id BIGSERIAL PRIMARY KEY,
      link TEXT NOT NULL UNIQUE,
      title TEXT NOT NULL,
      snippet TEXT,
      source_type TEXT NOT NULL,
      search_term TEXT,
      published_at TIMESTAMPTZ,
      source_name TEXT,
      tier INTEGER NOT NULL,
      filter_reason TEXT,
      classifier TEXT NOT NULL,
      actor TEXT NOT NULL,
      actor_confidence INTEGER NOT NULL,
      team_type TEXT NOT NULL,
      team_type_category TEXT,
      team_type_confidence INTEGER NOT NULL,
      primary_category TEXT NOT NULL,
      primary_category_confidence INTEGER NOT NULL,
      excerpt TEXT,
      is_positive BOOLEAN NOT NULL DEFAULT FALSE,
      classification JSONB,
      status TEXT NOT NULL,
      needs_review TEXT[] NOT NULL DEFAULT '{}',
      reviewed_at TIMESTAMPTZ,
      collected_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_cases_status ON cases (status);",
    "CREATE INDEX IF NOT EXISTS idx_cases_collected_at ON cases (collected_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_cases_team_type ON cases (team_type);",
    # Review queue (classification disambiguation + keyword promotion)
    """
    CREATE TABLE IF NOT EXISTS approval_queue (
      id BIGSERIAL PRIMARY KEY,
      kind TEXT NOT NULL, -- classification|keyword
      link TEXT REFERENCES cases(link) ON DELETE CASCADE,
      dimension TEXT,
      term TEXT,
      frequency INTEGER,
      options JSONB NOT NULL,
      decision TEXT,
      decided_at TIMESTAMPTZ,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_approval_queue_open ON approval_queue (kind, created_at DESC) WHERE decision IS NULL;",
    # Run log (fetch failures, run summaries)
    """
    CREATE TABLE IF NOT EXISTS collection_logs (
      id BIGSERIAL PRIMARY KEY,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      event TEXT NOT NULL,
      payload JSONB
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_collection_logs_created_at ON collection_logs (created_at DESC);",
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
