import itertools
from typing import Any, Dict, List, Optional

import pytest

from pyqcorpus.models.question import QuestionPatch, QuestionRecord
from pyqcorpus.services.corpus.store import DuplicateGroup


class MemoryQuestionStore:
    """In-memory stand-in for QuestionStore with the same method contract."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self._seq = itertools.count(1)
        self.deleted: List[str] = []
        self.patches: List[tuple] = []

    def ensure_indexes(self):
        pass

    def add(self, **props) -> str:
        """Seed a raw record, bypassing ingestion validation."""
        n = next(self._seq)
        rid = props.pop("id", None) or f"q{n:04d}"
        doc = {"id": rid, "createdAt": f"2024-01-01T00:00:{n:02d}.000000Z"}
        doc.update(props)
        self.docs[rid] = doc
        return rid

    def insert(self, record: QuestionRecord) -> str:
        props = {k: v for k, v in record.to_properties().items() if v is not None}
        return self.add(**props)

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        doc = self.docs.get(record_id)
        return dict(doc) if doc else None

    def count(self) -> int:
        return len(self.docs)

    def iter_batches(self, batch_size: int = 100):
        after = None
        while True:
            ids = sorted(i for i in self.docs if after is None or i > after)[:batch_size]
            if not ids:
                return
            yield [dict(self.docs[i]) for i in ids]
            if len(ids) < batch_size:
                return
            after = ids[-1]

    def apply_patch(self, record_id: str, patch: QuestionPatch) -> None:
        changes = patch.to_update()
        self.patches.append((record_id, changes))
        doc = self.docs[record_id]
        for k, v in changes.items():
            if v is None:
                doc.pop(k, None)
            else:
                doc[k] = v

    def delete(self, record_id: str) -> None:
        self.docs.pop(record_id, None)
        self.deleted.append(record_id)

    def duplicate_groups(self, prefix_chars: int) -> List[DuplicateGroup]:
        groups: Dict[tuple, List[Dict[str, Any]]] = {}
        for doc in sorted(self.docs.values(), key=lambda d: (d.get("createdAt"), d["id"])):
            key = (doc.get("exam"), doc.get("year"), doc.get("lang"), (doc.get("question") or "")[:prefix_chars])
            groups.setdefault(key, []).append(
                {
                    "id": doc["id"],
                    "verified": bool(doc.get("verified")),
                    "sourceLink": doc.get("sourceLink"),
                    "createdAt": doc.get("createdAt"),
                }
            )
        return [
            DuplicateGroup(exam=k[0], year=k[1], lang=k[2], prefix=k[3], members=m)
            for k, m in groups.items()
            if len(m) > 1
        ]

    def counts_by_exam(self):
        counts: Dict[Any, int] = {}
        for doc in self.docs.values():
            counts[doc.get("exam")] = counts.get(doc.get("exam"), 0) + 1
        return [{"exam": e, "count": c} for e, c in sorted(counts.items(), key=lambda x: -x[1])]

    def search(self, *, exam=None, year=None, text=None, limit=20):
        out = []
        for doc in self.docs.values():
            if exam is not None and doc.get("exam") != exam:
                continue
            if year is not None and doc.get("year") != year:
                continue
            if text and text.lower() not in (doc.get("question") or "").lower():
                continue
            out.append(dict(doc))
        return out[:limit]


@pytest.fixture
def store():
    return MemoryQuestionStore()
