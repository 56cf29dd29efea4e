"""Collapse near-duplicate questions to one representative per group.

Groups share ``(exam, year, lang, question[:prefix_chars])``. The representative
is the first verified member, else the first member from an official source,
else the earliest inserted member. Safe to re-run: a converged corpus has no
groups left. Records inserted while a pass runs are picked up by the next pass.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pyqcorpus import config
from pyqcorpus.errors import PersistenceError
from pyqcorpus.models.question import DedupStats
from pyqcorpus.services.questions.enricher import is_official_source

from .store import DuplicateGroup

logger = logging.getLogger(__name__)


def choose_representative(members: List[Dict[str, Any]]) -> Dict[str, Any]:
    """``members`` must be ordered oldest first."""
    for m in members:
        if m.get("verified") is True:
            return m
    for m in members:
        if is_official_source(m.get("sourceLink")):
            return m
    return members[0]


def deduplicate(
    store,
    *,
    dry_run: bool = True,
    prefix_chars: int = config.DEDUP_PREFIX_CHARS,
) -> DedupStats:
    stats = DedupStats()
    groups: List[DuplicateGroup] = store.duplicate_groups(prefix_chars)
    for group in groups:
        keep = choose_representative(group.members)
        stats.groups += 1
        stats.kept.append(keep["id"])
        for member in group.members:
            if member["id"] == keep["id"]:
                continue
            stats.removed_ids.append(member["id"])
            if dry_run:
                stats.deleted += 1
                continue
            try:
                store.delete(member["id"])
            except PersistenceError as exc:
                logger.warning("Could not delete duplicate %s: %s", member["id"], exc)
                continue
            stats.deleted += 1
            logger.info("Removed duplicate %s (keeping %s)", member["id"], keep["id"])
    return stats
