from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urljoin

import httpx
from selectolax.parser import HTMLParser

from pyqcorpus import config
from pyqcorpus.errors import FetchError

from .locator import normalize_url, resolve_link, same_host

MAX_REDIRECTS = 5


@dataclass
class FetchedPage:
    """HTML of a page and the URL it was served from after redirects."""

    url: str
    html: str


class PageFetcher:
    """HTTP access for the crawler: HTML pages and document binaries.

    Every failure (network error, timeout, non-2xx status) surfaces as FetchError.
    Page requests only follow redirects that stay on the requested host.
    """

    def __init__(
        self,
        *,
        timeout: float = config.PAGE_TIMEOUT,
        document_timeout: float = config.DOCUMENT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.timeout = float(timeout)
        self.document_timeout = float(document_timeout)
        self.headers = headers or {"User-Agent": config.user_agent()}
        self.transport = transport

    def fetch_page(self, url: str) -> FetchedPage:
        r = self._get(url, timeout=self.timeout, same_host_only=True)
        return FetchedPage(url=normalize_url(str(r.url)), html=r.text)

    def fetch_bytes(self, url: str) -> bytes:
        return self._get(url, timeout=self.document_timeout).content

    @staticmethod
    def extract_links(html: str, base_url: str) -> List[str]:
        """Return absolute, de-duplicated link targets in document order."""
        doc = HTMLParser(html or "")
        out: List[str] = []
        seen = set()
        for node in doc.css("a[href]"):
            resolved = resolve_link(node.attributes.get("href") or "", base_url)
            if resolved and resolved not in seen:
                seen.add(resolved)
                out.append(resolved)
        return out

    def _get(self, url: str, *, timeout: float, same_host_only: bool = False) -> httpx.Response:
        try:
            with httpx.Client(
                timeout=timeout,
                headers=self.headers,
                follow_redirects=not same_host_only,
                transport=self.transport,
            ) as client:
                r = client.get(url)
                hops = 0
                while same_host_only and r.is_redirect:
                    target = urljoin(str(r.url), r.headers["location"])
                    if not same_host(target, url):
                        raise FetchError(url, f"redirected off host to {target}")
                    hops += 1
                    if hops > MAX_REDIRECTS:
                        raise FetchError(url, "too many redirects")
                    r = client.get(target)
                r.raise_for_status()
                return r
        except httpx.HTTPStatusError as exc:
            raise FetchError(url, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc
