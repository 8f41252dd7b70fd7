"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


SOURCE_BLOG = "blog"
SOURCE_NEWS = "news"
SOURCE_TYPES = (SOURCE_BLOG, SOURCE_NEWS)


@dataclass(frozen=True)
class RawItem:
    """Search hit exactly as the search API returned it (markup included)."""

    title: str
    snippet: str
    link: str
    source_type: str
    published_at: Optional[datetime] = None
    search_term: str = ""
    source_name: Optional[str] = None


@dataclass(frozen=True)
class NormalizedItem:
    """RawItem with markup stripped and the link canonicalized.

    Derived only; never persisted on its own.
    """

    title: str
    snippet: str
    link: str
    source_type: str
    published_at: Optional[datetime] = None
    search_term: str = ""
    source_name: Optional[str] = None

    @property
    def text(self) -> str:
        return f"{self.title} {self.snippet}".lower()
