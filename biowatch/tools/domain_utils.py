"""
Domain extraction and classification utilities.
Handles URL parsing, registered-domain matching and source credibility tiers.
"""

import re
import logging
from functools import lru_cache
from typing import Iterable, Optional
from urllib.parse import urlparse
import tldextract

from ..config import LOW_TRUST_PATTERNS, REGULATORY_DOMAINS, TRUSTED_NEWS_DOMAINS
from ..schemas.base import SourceTier

logger = logging.getLogger(__name__)

# Bundled public-suffix snapshot only: no network fetch at first use
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_DOMAIN_RE = re.compile(r'([a-zA-Z0-9][-a-zA-Z0-9]*\.)+[a-zA-Z]{2,}')


def extract_clean_domain(url_or_text: str) -> Optional[str]:
    """
    Extract a clean hostname from various input formats.

    Examples:
        "https://www.amgen.com/newsroom" → "amgen.com"
        "investors.sandoz.com" → "investors.sandoz.com"
        "Amgen Inc" → None (not a domain)

    Args:
        url_or_text: URL, domain, or text that might contain a domain

    Returns:
        Lowercase hostname without "www." or None if not found
    """
    if not url_or_text:
        return None

    text = url_or_text.strip()

    if "://" not in text:
        if " " in text or "." not in text:
            return None
        text = "https://" + text

    try:
        hostname = urlparse(text).hostname or ""
    except ValueError:
        return None

    if hostname.startswith("www."):
        hostname = hostname[4:]

    if "." in hostname and len(hostname) > 3 and _DOMAIN_RE.fullmatch(hostname):
        return hostname.lower()
    return None


@lru_cache(maxsize=2048)
def registered_domain(hostname: str) -> str:
    """
    Collapse a hostname to its registered domain.

    Examples:
        "investors.amgen.com" → "amgen.com"
        "www.gov.uk" → "gov.uk"
        "news.bbc.co.uk" → "bbc.co.uk"
    """
    if not hostname:
        return ""
    extracted = _EXTRACT(hostname)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    # Bare public suffixes (gov.uk, europa.eu) come back with an empty domain
    return hostname.lower()


def domain_in(hostname: Optional[str], domains: Iterable[str]) -> bool:
    """True if hostname equals or is a subdomain of any of `domains`."""
    if not hostname:
        return False
    hostname = hostname.lower()
    for d in domains:
        d = d.lower()
        if hostname == d or hostname.endswith("." + d):
            return True
    return False


def classify_source(hostname: Optional[str], company_domains: Iterable[str] = ()) -> SourceTier:
    """
    Place a result's host into a credibility tier.

    Regulators outrank everything; a watched company's own domain (newsroom,
    IR feed) counts as first-party; then trade press; then unknown.
    """
    if not hostname:
        return SourceTier.UNKNOWN
    if domain_in(hostname, REGULATORY_DOMAINS):
        return SourceTier.REGULATORY
    registered = registered_domain(hostname)
    if any(registered == registered_domain(d) for d in company_domains if d):
        return SourceTier.COMPANY
    if domain_in(hostname, TRUSTED_NEWS_DOMAINS):
        return SourceTier.TRUSTED
    if any(p in hostname for p in LOW_TRUST_PATTERNS):
        return SourceTier.LOW
    return SourceTier.UNKNOWN
