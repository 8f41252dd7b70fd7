"""Canonical dedup key for search hits."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "gclid",
    "fbclid",
    "ref",
    "ref_src",
    # Naver share/referrer noise
    "from",
    "trackingcode",
    "isinf",
}

# Mobile mirrors of the same post resolve to the desktop host.
HOST_ALIASES = {
    "m.blog.naver.com": "blog.naver.com",
    "m.news.naver.com": "n.news.naver.com",
}


def canonicalize_url(url: str) -> str:
    """Canonicalize a URL so the same post always yields the same key.

    - Lowercase scheme + hostname, fold mobile hosts
    - Drop the fragment and a trailing slash
    - Strip tracking query parameters, sort the rest
    """
    if not url:
        return ""
    p = urlparse(url.strip())
    scheme = (p.scheme or "https").lower()
    netloc = (p.netloc or "").lower()
    netloc = HOST_ALIASES.get(netloc, netloc)
    path = p.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    kept = [(k, v) for k, v in parse_qsl(p.query, keep_blank_values=True) if k.lower() not in TRACKING_PARAMS]
    kept.sort(key=lambda kv: (kv[0].lower(), kv[1]))
    return urlunparse((scheme, netloc, path, "", urlencode(kept, doseq=True), ""))
