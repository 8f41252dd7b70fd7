"""Naver Search Open API client (blog + news).

The collector only ever asks for recent hits for one term at a time.
A transport error or a non-JSON body raises SearchError; the orchestrator
counts it, logs it and moves on to the next term. A well-formed reply with no
usable items is simply an empty result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import requests

from teamcase.ingestion.item_types import SOURCE_BLOG, SOURCE_NEWS, RawItem

logger = logging.getLogger(__name__)


class SearchError(Exception):
    """Raised when a search request fails or returns an unreadable body."""
    pass


SEARCH_ENDPOINTS = {
    SOURCE_BLOG: "https://openapi.naver.com/v1/search/blog.json",
    SOURCE_NEWS: "https://openapi.naver.com/v1/search/news.json",
}

# display is capped at 100 and start at 1000 by the API
MAX_DISPLAY = 100
MAX_START = 1000


def _parse_postdate(value: Any) -> Optional[datetime]:
    """Blog hits carry a bare YYYYMMDD date."""
    s = str(value or "").strip()
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _parse_pubdate(value: Any) -> Optional[datetime]:
    """News hits carry an RFC 822 date ("Mon, 06 Oct 2025 09:00:00 +0900")."""
    s = str(value or "").strip()
    if not s:
        return None
    try:
        parsed = parsedate_to_datetime(s)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_raw_item(entry: Dict[str, Any], *, source_type: str, term: str) -> Optional[RawItem]:
    if source_type == SOURCE_NEWS:
        # originallink points at the publisher; link may be the Naver mirror
        link = entry.get("originallink") or entry.get("link") or ""
        published = _parse_pubdate(entry.get("pubDate"))
        source_name = None
    else:
        link = entry.get("link") or ""
        published = _parse_postdate(entry.get("postdate"))
        source_name = entry.get("bloggername") or None
    title = entry.get("title") or ""
    if not link or not title:
        return None
    return RawItem(
        title=str(title),
        snippet=str(entry.get("description") or ""),
        link=str(link).strip(),
        source_type=source_type,
        published_at=published,
        search_term=term,
        source_name=source_name,
    )


@dataclass(frozen=True)
class NaverSearchClient:
    client_id: str
    client_secret: str
    timeout: int = 30

    name: str = "naver"

    def search(
        self,
        term: str,
        source_type: str,
        *,
        count: int = 10,
        offset: int = 1,
        sort: str = "date",
    ) -> List[RawItem]:
        endpoint = SEARCH_ENDPOINTS.get(source_type)
        if endpoint is None:
            logger.warning(f"Unsupported source type {source_type!r} for term [{term}]")
            return []
        params = {
            "query": term,
            "display": min(max(count, 1), MAX_DISPLAY),
            "start": min(max(offset, 1), MAX_START),
            "sort": sort,
        }
        headers = {
            "X-Naver-Client-Id": self.client_id,
            "X-Naver-Client-Secret": self.client_secret,
        }
        try:
            resp = requests.get(endpoint, params=params, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json() or {}
        except requests.exceptions.RequestException as e:
            raise SearchError(f"{source_type} search error for [{term}]: {e}") from e
        except ValueError as e:
            raise SearchError(f"{source_type} search for [{term}] returned non-JSON: {e}") from e

        entries = data.get("items") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return []
        out: List[RawItem] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            item = _to_raw_item(entry, source_type=source_type, term=term)
            if item is not None:
                out.append(item)
        return out
