"""URL canonicalization helpers for normalization/dedup."""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from ..config import TRACKING_QUERY_PARAMS


def canonicalize_url(url: str, *, strip_params: Optional[Iterable[str]] = None) -> str:
    """Canonicalize a URL for dedup.

    - Lowercase scheme + hostname, drop "www."
    - Remove fragments and trailing slashes
    - Strip tracking query parameters (utm_*, gclid, ...)
    - Sort remaining query params

    Returns "" for anything that is not an absolute http(s) URL.
    """
    if not url:
        return ""
    strip = set(strip_params) if strip_params is not None else TRACKING_QUERY_PARAMS
    try:
        p = urlparse(url.strip())
    except ValueError:
        return ""
    scheme = (p.scheme or "").lower()
    if scheme not in ("http", "https") or not p.netloc:
        return ""
    # http/https variants of the same page are one story
    scheme = "https"
    netloc = p.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    if netloc.endswith(":443") or netloc.endswith(":80"):
        netloc = netloc.rsplit(":", 1)[0]
    path = p.path.rstrip("/") or "/"

    kept = []
    for k, v in parse_qsl(p.query, keep_blank_values=True):
        if k.lower() in strip or k.lower().startswith("utm_"):
            continue
        kept.append((k, v))
    kept.sort(key=lambda kv: (kv[0].lower(), kv[1]))
    query = urlencode(kept, doseq=True)

    return urlunparse((scheme, netloc, path, "", query, ""))


def stable_id(text: str) -> str:
    """Short stable identifier (SHA-1 prefix) for ids within a run."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:16]
