from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError

from pyqcorpus.errors import PersistenceError
from pyqcorpus.models.question import QuestionRecord
from pyqcorpus.services.questions.enricher import extract_year, is_official_source
from pyqcorpus.services.questions.language import primary_language
from pyqcorpus.services.questions.segmenter import segment

from .base import CrawlConfig

logger = logging.getLogger(__name__)


def build_records(text: str, source_url: str, cfg: CrawlConfig) -> List[QuestionRecord]:
    """Segment one document's text into records sharing its year and provenance."""
    year = extract_year(text, cfg.year_fallback)
    verified = is_official_source(source_url)
    records: List[QuestionRecord] = []
    for q in segment(text):
        try:
            records.append(
                QuestionRecord(
                    exam=cfg.exam,
                    level=cfg.level or "",
                    paper=cfg.paper or "",
                    year=year,
                    question=q,
                    topic_tags=[cfg.theme] if cfg.theme else [],
                    source_link=source_url,
                    lang=primary_language(q),
                    verified=verified,
                )
            )
        except ValidationError as exc:
            logger.debug("Rejected candidate from %s: %s", source_url, exc)
    return records


def persist_records(store, records: List[QuestionRecord]) -> int:
    """Insert records one by one; a failed write is logged and skipped."""
    inserted = 0
    for rec in records:
        try:
            store.insert(rec)
        except PersistenceError as exc:
            logger.warning("Skipping record: %s", exc)
            continue
        inserted += 1
    return inserted
