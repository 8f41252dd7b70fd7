"""Markup stripping for search snippets.

Naver wraps matched query terms in <b> tags and escapes a handful of entities.
The rule is deliberately blunt: every `<...>` run is removed (malformed or
nested tags included) and exactly three entities are decoded.
"""

from __future__ import annotations

import re
from typing import Optional

from teamcase.ingestion.item_types import NormalizedItem, RawItem
from teamcase.ingestion.url_utils import canonicalize_url


_TAG_RE = re.compile(r"<[^>]*>")

# Order matters: &amp; last so "&amp;quot;" decodes to "&quot;", not '"'.
_ENTITIES = (
    ("&quot;", '"'),
    ("&nbsp;", " "),
    ("&amp;", "&"),
)


def normalize(raw: Optional[str]) -> str:
    if not raw:
        return ""
    text = _TAG_RE.sub("", raw)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text


def normalize_item(item: RawItem) -> NormalizedItem:
    return NormalizedItem(
        title=normalize(item.title),
        snippet=normalize(item.snippet),
        link=canonicalize_url(item.link) or item.link,
        source_type=item.source_type,
        published_at=item.published_at,
        search_term=item.search_term,
        source_name=item.source_name,
    )
