from __future__ import annotations

import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, Optional, Set

from pyqcorpus import config


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class CrawlTask:
    url: str
    depth: int


@dataclass
class CrawlConfig:
    root: str
    exam: str = config.DEFAULT_EXAM
    level: str = ""
    paper: str = ""
    theme: Optional[str] = None
    year_fallback: Optional[int] = None
    max_depth: int = config.DEFAULT_MAX_DEPTH
    max_pages: int = config.DEFAULT_MAX_PAGES


@dataclass
class CrawlState:
    """Mutable state of exactly one crawl run."""

    queue: Deque[CrawlTask] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    seen_documents: Set[str] = field(default_factory=set)
    pages_visited: int = 0
    pages_failed: int = 0
    documents_processed: int = 0
    documents_skipped: int = 0
    records_inserted: int = 0
    records_failed: int = 0


@dataclass
class CrawlResult:
    pages_visited: int
    records_inserted: int
    pages_failed: int = 0
    documents_processed: int = 0
    documents_skipped: int = 0
    records_failed: int = 0
    started_at: str = ""
    finished_at: str = ""

    @classmethod
    def from_state(cls, state: CrawlState, *, started_at: str) -> "CrawlResult":
        return cls(
            pages_visited=state.pages_visited,
            records_inserted=state.records_inserted,
            pages_failed=state.pages_failed,
            documents_processed=state.documents_processed,
            documents_skipped=state.documents_skipped,
            records_failed=state.records_failed,
            started_at=started_at,
            finished_at=now_iso(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
