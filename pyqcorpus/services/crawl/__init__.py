"""Exam-paper crawling subsystem.

Structure:
- base.py: crawl task/state/result types
- locator.py: document vs page classification, link resolution
- fetcher.py: httpx page/binary fetching + selectolax link extraction
- ingest.py: text -> QuestionRecord list -> store
- frontier.py: the bounded BFS driver
- runner.py: CLI entrypoint (crawl, dedup, cleanup)
"""

from .base import CrawlConfig, CrawlResult, CrawlState, CrawlTask
from .frontier import Crawler, crawl

__all__ = ["CrawlConfig", "CrawlResult", "CrawlState", "CrawlTask", "Crawler", "crawl"]
