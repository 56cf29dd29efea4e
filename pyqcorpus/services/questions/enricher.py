from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import urlparse

from pyqcorpus import config

_YEAR_RE = re.compile(r"\b(\d{4})\b")


def extract_year(
    text: str,
    fallback: Optional[int] = None,
    *,
    min_year: int = config.EXTRACT_YEAR_MIN,
    max_year: Optional[int] = None,
) -> Optional[int]:
    """Return the first 4-digit token in [min_year, max_year] in document order."""
    upper = max_year if max_year is not None else config.current_year()
    for m in _YEAR_RE.finditer(text or ""):
        year = int(m.group(1))
        if min_year <= year <= upper:
            return year
    return fallback or None


def _host_matches(host: str, pattern: str) -> bool:
    if pattern.startswith("."):
        return host.endswith(pattern)
    return host == pattern or host.endswith("." + pattern)


def is_official_source(url: Optional[str], domains: Optional[Iterable[str]] = None) -> bool:
    """True when the URL's host belongs to a known exam authority.

    A provenance heuristic only; nothing about the content is checked.
    """
    if not url:
        return False
    try:
        host = (urlparse(url.strip()).hostname or "").lower()
    except ValueError:
        return False
    if not host:
        return False
    patterns = config.official_domains() if domains is None else domains
    return any(_host_matches(host, p.lower()) for p in patterns)
