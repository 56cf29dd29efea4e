"""Classify resolved links as exam-paper documents or crawlable pages."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse

_DOCUMENT_RE = re.compile(r"\.pdf(\?.*)?$", re.IGNORECASE)


def is_document(url: str) -> bool:
    return bool(_DOCUMENT_RE.search(url or ""))


def same_host(url: str, root: str) -> bool:
    try:
        return urlparse(url).netloc.lower() == urlparse(root).netloc.lower()
    except ValueError:
        return False


def normalize_url(url: str) -> str:
    """Drop the fragment and give an empty path a trailing slash."""
    url, _frag = urldefrag(url)
    parsed = urlparse(url)
    if not parsed.path:
        parsed = parsed._replace(path="/")
    return parsed.geturl()


def resolve_link(href: str, base_url: str) -> Optional[str]:
    """Resolve an anchor href against the page URL.

    Returns an absolute http(s) URL without fragment, or None for links that
    cannot be crawled (mailto:, javascript:, empty, malformed).
    """
    href = (href or "").strip()
    if not href or href.startswith("#"):
        return None
    try:
        absolute = normalize_url(urljoin(base_url, href))
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute
