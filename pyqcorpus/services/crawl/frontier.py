"""Breadth-first crawl of an exam authority site.

Pages are fetched one at a time. Document links found on a page are extracted,
segmented and persisted before the next page is dequeued, so the order is only
approximately breadth-first. Crawling stays on the root's host and stops when
the queue is empty or ``max_pages`` pages have been fetched.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from pyqcorpus import config
from pyqcorpus.errors import FetchError
from pyqcorpus.services.extraction.pipeline import TextExtractionPipeline

from .base import CrawlConfig, CrawlResult, CrawlState, CrawlTask, now_iso
from .fetcher import PageFetcher
from .ingest import build_records, persist_records
from .locator import is_document, normalize_url, same_host

logger = logging.getLogger(__name__)


def check_root(root: str) -> str:
    """Validate the crawl root and normalize it the way discovered links are."""
    parsed = urlparse((root or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Root URL must be an absolute http(s) URL, got {root!r}")
    return normalize_url(parsed.geturl())


class Crawler:
    def __init__(
        self,
        store,
        *,
        fetcher: Optional[PageFetcher] = None,
        pipeline: Optional[TextExtractionPipeline] = None,
        min_chars: int = config.MIN_TEXT_CHARS,
    ) -> None:
        self.store = store
        self.fetcher = fetcher or PageFetcher()
        self.pipeline = pipeline or TextExtractionPipeline(self.fetcher)
        self.min_chars = min_chars

    def crawl(self, cfg: CrawlConfig) -> CrawlResult:
        root = check_root(cfg.root)
        started = now_iso()
        state = CrawlState()
        state.queue.append(CrawlTask(url=root, depth=0))

        while state.queue and state.pages_visited < cfg.max_pages:
            task = state.queue.popleft()
            if task.url in state.visited:
                continue
            state.visited.add(task.url)
            try:
                page = self.fetcher.fetch_page(task.url)
            except FetchError as exc:
                state.pages_failed += 1
                logger.warning("Skipping page: %s", exc)
                continue
            if page.url != task.url:
                if not same_host(page.url, root):
                    state.pages_failed += 1
                    logger.warning("Skipping %s: redirected off host to %s", task.url, page.url)
                    continue
                if page.url in state.visited:
                    continue
                state.visited.add(page.url)
            state.pages_visited += 1
            links = self.fetcher.extract_links(page.html, page.url)
            logger.info("Crawling page %d (depth %d): %s, %d link(s)", state.pages_visited, task.depth, task.url, len(links))

            for link in links:
                if not same_host(link, root):
                    continue
                if is_document(link):
                    self._process_document(link, cfg, state)
                elif task.depth + 1 <= cfg.max_depth and link not in state.visited:
                    state.queue.append(CrawlTask(url=link, depth=task.depth + 1))

        result = CrawlResult.from_state(state, started_at=started)
        logger.info("Crawl complete: pages=%d, inserted=%d", result.pages_visited, result.records_inserted)
        return result

    def _process_document(self, url: str, cfg: CrawlConfig, state: CrawlState) -> None:
        if url in state.seen_documents:
            return
        state.seen_documents.add(url)
        name = url.rsplit("/", 1)[-1]
        logger.info("Downloading document: %s", name)
        extracted = self.pipeline.extract_url(url)
        if extracted.char_count <= self.min_chars:
            state.documents_skipped += 1
            logger.warning("Document %s has insufficient text (%d chars), skipping", name, extracted.char_count)
            return
        state.documents_processed += 1
        records = build_records(extracted.text, url, cfg)
        if not records:
            logger.info("No questions found in %s (method %s)", name, extracted.method)
            return
        inserted = persist_records(self.store, records)
        state.records_inserted += inserted
        state.records_failed += len(records) - inserted
        logger.info("Stored %d/%d question(s) from %s (year %s)", inserted, len(records), name, records[0].year)


def crawl(cfg: CrawlConfig, store, **kwargs) -> CrawlResult:
    return Crawler(store, **kwargs).crawl(cfg)
