"""Corpus-wide field normalization.

Walks the whole corpus in fixed-size batches and, per record, canonicalizes
exam/level/paper, repairs year and question text where possible, validates
language (resolving mixed-script questions), trims tags and keywords, and marks
official-source records as verified.

Records that stay invalid after recovery are flagged for review in safe mode
(``needsReview``/``reviewReasons``) or deleted in aggressive mode. A dry run
computes the same statistics without writing anything.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pyqcorpus import config
from pyqcorpus.errors import PersistenceError, ValidationFailure
from pyqcorpus.models.question import CleanupStats, FixCounters, QuestionPatch
from pyqcorpus.services.questions.enricher import is_official_source
from pyqcorpus.services.questions.language import dominant_language, is_multi_language, primary_language

from .dedup import deduplicate

logger = logging.getLogger(__name__)

EXAM_NORMALIZATION: Dict[str, str] = {
    "upsc": "UPSC", "pcs": "PCS", "ssc": "SSC", "tnpsc": "TNPSC",
    "mpsc": "MPSC", "bpsc": "BPSC", "uppsc": "UPPSC", "mppsc": "MPPSC",
    "ras": "RAS", "rpsc": "RPSC", "gpsc": "GPSC", "kpsc": "KPSC",
    "wbpsc": "WBPSC", "ppsc": "PPSC", "opsc": "OPSC", "apsc": "APSC",
    "appsc": "APPSC", "tspsc": "TSPSC", "hpsc": "HPSC", "jkpsc": "JKPSC",
    "kerala psc": "KERALA PSC", "goa psc": "GOA PSC",
}

LEVEL_NORMALIZATION: Dict[str, str] = {
    "prelims": "Prelims", "prelim": "Prelims", "preliminary": "Prelims",
    "mains": "Mains", "main": "Mains",
    "interview": "Interview",
    "": "",
}

_GS_PAPER_RE = re.compile(r"^GS[\s\-_]*(?:PAPER[\s\-_]*)?([1-4])(?:[\s\-_]*PAPER)?$", re.IGNORECASE)


def collapse(text: str) -> str:
    return " ".join(text.split())


def normalize_exam(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    key = collapse(value).lower()
    return EXAM_NORMALIZATION.get(key, collapse(value).upper())


def normalize_level(value: Any) -> str:
    s = str(value).strip()
    return LEVEL_NORMALIZATION.get(s.lower(), s)


def normalize_paper(value: Any) -> str:
    s = str(value or "").strip()
    if not s:
        return ""
    m = _GS_PAPER_RE.match(s)
    if m:
        return f"GS-{m.group(1)}"
    upper = s.upper()
    if "CSAT" in upper:
        return "CSAT"
    if "ESSAY" in upper:
        return "Essay"
    return s


def _as_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return value.split(",")
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None]
    return []


def normalize_tags(value: Any) -> List[str]:
    tags = [t.strip() for t in _as_list(value)]
    tags = [t for t in tags if 0 < len(t) <= config.MAX_TOPIC_TAG_CHARS][: config.MAX_TOPIC_TAGS]
    return [t[:1].upper() + t[1:].lower() for t in tags]


def normalize_keywords(value: Any) -> List[str]:
    kws = [k.strip() for k in _as_list(value)]
    return [k for k in kws if 0 < len(k) <= config.MAX_KEYWORD_CHARS][: config.MAX_KEYWORDS]


def _same_items(a: List[str], b: Any) -> bool:
    return isinstance(b, list) and sorted(a) == sorted(str(x) for x in b)


def _coerce_year(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class RecordPlan:
    patch: QuestionPatch = field(default_factory=QuestionPatch)
    problems: List[str] = field(default_factory=list)


class CorpusCleanup:
    def __init__(
        self,
        store,
        *,
        dry_run: bool = True,
        aggressive: bool = False,
        batch_size: int = config.DEFAULT_BATCH_SIZE,
        remove_exact_duplicates: bool = True,
    ) -> None:
        self.store = store
        self.dry_run = dry_run
        self.aggressive = aggressive
        self.batch_size = max(1, int(batch_size))
        self.remove_exact_duplicates = remove_exact_duplicates

    # --- per-field checks; raise ValidationFailure when unrecoverable ---

    def _exam(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> None:
        raw = rec.get("exam")
        norm = normalize_exam(raw)
        if norm is None:
            raise ValidationFailure(rec.get("id"), "exam", "missing")
        if norm != raw:
            patch.exam = norm
            fixed.exam += 1

    def _level(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> None:
        raw = rec.get("level")
        if raw is None:
            return
        norm = normalize_level(raw)
        if norm != raw:
            patch.level = norm
            fixed.level += 1

    def _paper(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> None:
        raw = rec.get("paper")
        if raw is None:
            return
        norm = normalize_paper(raw)
        if norm != raw:
            patch.paper = norm
            fixed.paper += 1

    def _year(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> None:
        raw = rec.get("year")
        year = _coerce_year(raw)
        this_year = config.current_year()
        if year is not None and config.RECORD_YEAR_MIN <= year <= this_year + 1:
            if year != raw:
                patch.year = year
                fixed.year += 1
            return
        if year is not None and 1900 < year < 2100:
            patch.year = max(config.RECORD_YEAR_MIN, min(year, this_year))
            fixed.year += 1
            return
        raise ValidationFailure(rec.get("id"), "year", f"unrecoverable value {raw!r}")

    def _question(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> str:
        raw = rec.get("question")
        text = raw if isinstance(raw, str) else ""
        if len(text.strip()) < config.DISPLAY_MIN_CHARS:
            for alt_field in ("answer", "theme"):
                alt = rec.get(alt_field)
                if isinstance(alt, str) and len(alt.strip()) >= config.DISPLAY_MIN_CHARS:
                    text = alt
                    break
            else:
                raise ValidationFailure(rec.get("id"), "question", f"too short ({len(text.strip())} chars)")
        norm = collapse(text)
        if norm != raw:
            patch.question = norm
            fixed.question += 1
        return norm

    def _lang(self, rec: Dict[str, Any], question: str, patch: QuestionPatch, fixed: FixCounters) -> None:
        raw = rec.get("lang")
        target = raw if raw in config.ALLOWED_LANGS else config.DEFAULT_LANG
        if question and is_multi_language(question):
            dominant = dominant_language(question)
            if dominant != target:
                target = dominant
                fixed.mixed_language += 1
        elif question and target == "multi":
            target = primary_language(question)
            fixed.mixed_language += 1
        if target != raw:
            patch.lang = target
            fixed.lang += 1

    def _lists(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> None:
        tags = normalize_tags(rec.get("topicTags"))
        if not _same_items(tags, rec.get("topicTags")):
            patch.topic_tags = tags
            fixed.topic_tags += 1
        keywords = normalize_keywords(rec.get("keywords"))
        if not _same_items(keywords, rec.get("keywords")):
            patch.keywords = keywords
            fixed.keywords += 1

    def _text_fields(self, rec: Dict[str, Any], patch: QuestionPatch, fixed: FixCounters) -> None:
        analysis = rec.get("analysis")
        if isinstance(analysis, str) and collapse(analysis) != analysis:
            patch.analysis = collapse(analysis)
            fixed.analysis += 1
        for name in ("answer", "theme"):
            value = rec.get(name)
            if isinstance(value, str) and collapse(value) != value:
                setattr(patch, name, collapse(value))
        link = rec.get("sourceLink")
        if isinstance(link, str) and link.strip() != link:
            patch.source_link = link.strip()
        if is_official_source(link) and rec.get("verified") is not True:
            patch.verified = True
            fixed.verified += 1

    def plan(self, rec: Dict[str, Any], fixed: FixCounters) -> RecordPlan:
        """Compute the patch and remaining problems for one record, without writing."""
        plan = RecordPlan()
        p = plan.patch
        for check in (self._exam, self._level, self._paper, self._year):
            try:
                check(rec, p, fixed)
            except ValidationFailure as exc:
                plan.problems.append(f"{exc.field}: {exc.reason}")
        try:
            question = self._question(rec, p, fixed)
        except ValidationFailure as exc:
            plan.problems.append(f"{exc.field}: {exc.reason}")
            question = rec.get("question") if isinstance(rec.get("question"), str) else ""
        self._lang(rec, question, p, fixed)
        self._lists(rec, p, fixed)
        self._text_fields(rec, p, fixed)
        return plan

    def _process(self, rec: Dict[str, Any], stats: CleanupStats) -> None:
        rid = rec.get("id")
        plan = self.plan(rec, stats.fixed)
        if plan.problems:
            stats.invalid += 1
            logger.warning("Invalid record %s: %s", rid, "; ".join(plan.problems))
            if self.aggressive:
                if not self.dry_run:
                    self.store.delete(rid)
                stats.deleted += 1
                return
            if rec.get("needsReview") is not True or rec.get("reviewReasons") != plan.problems:
                plan.patch.needs_review = True
                plan.patch.review_reasons = plan.problems
        elif rec.get("needsReview"):
            plan.patch.needs_review = False
            plan.patch.review_reasons = []

        if plan.patch.is_empty():
            return
        if not self.dry_run:
            self.store.apply_patch(rid, plan.patch)
        stats.updated += 1

    def run(self) -> CleanupStats:
        stats = CleanupStats(total=self.store.count())
        for n, batch in enumerate(self.store.iter_batches(self.batch_size), start=1):
            for rec in batch:
                stats.processed += 1
                try:
                    self._process(rec, stats)
                except PersistenceError as exc:
                    logger.warning("Write failed for %s: %s", rec.get("id"), exc)
                    stats.errors += 1
                except Exception:
                    logger.exception("Error processing record %s", rec.get("id"))
                    stats.errors += 1
            logger.info("Processed batch %d (%d records so far)", n, stats.processed)

        if self.remove_exact_duplicates:
            dup = deduplicate(self.store, dry_run=self.dry_run, prefix_chars=config.EXACT_DUP_PREFIX_CHARS)
            stats.duplicates = dup.deleted
        return stats


def summarize(stats: CleanupStats, *, dry_run: bool, aggressive: bool) -> Dict[str, str]:
    removal = (
        f"delete {stats.deleted} invalid entries" if aggressive
        else f"flag {stats.invalid} invalid entries (not deleted)"
    )
    if dry_run:
        return {
            "message": (
                f"DRY RUN: Would update {stats.updated} records, {removal}, fix "
                f"{stats.fixed.mixed_language} mixed-language questions, and remove "
                f"{stats.duplicates} exact duplicates. Set dryRun=false to apply changes."
            ),
            "warning": (
                "This was a DRY RUN. No data was modified. Exact duplicates are counted on the stored values, "
                "so records that only match once normalized are not included. "
                "Review the stats and set dryRun=false to apply changes."
            ),
        }
    done = f"deleted {stats.deleted} invalid entries" if aggressive else f"flagged {stats.invalid} invalid entries (review manually)"
    return {
        "message": (
            f"Updated {stats.updated} records, {done}, fixed {stats.fixed.mixed_language} "
            f"mixed-language questions, and removed {stats.duplicates} exact duplicates."
        ),
        "warning": (
            "Changes have been applied. Invalid records were deleted." if aggressive
            else "Changes have been applied. No records were deleted except exact duplicates; invalid entries were flagged for manual review."
        ),
    }
