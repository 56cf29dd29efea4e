"""Corpus persistence and maintenance jobs.

- store.py: Neo4j-backed QuestionStore (indexes, keyset cursor, duplicate groups)
- dedup.py: representative-based duplicate removal
- cleanup.py: batch field normalization (safe / aggressive, dry-run)
"""

from .cleanup import CorpusCleanup, summarize
from .dedup import choose_representative, deduplicate
from .store import DuplicateGroup, QuestionStore, get_question_store

__all__ = [
    "CorpusCleanup",
    "DuplicateGroup",
    "QuestionStore",
    "choose_representative",
    "deduplicate",
    "get_question_store",
    "summarize",
]
