"""Question corpus persistence on Neo4j.

Each record is a ``(:Question)`` node keyed by ``id``. The store keeps a
compound range index on ``(exam, year)`` and a full-text index over
``(question, topicTags)`` for the browse/search layer.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from pyqcorpus.db.neo4j_connector import run_cypher
from pyqcorpus.errors import PersistenceError
from pyqcorpus.models.question import QuestionPatch, QuestionRecord

INDEX_STATEMENTS = (
    "CREATE CONSTRAINT question_id IF NOT EXISTS FOR (q:Question) REQUIRE q.id IS UNIQUE",
    "CREATE INDEX question_exam_year IF NOT EXISTS FOR (q:Question) ON (q.exam, q.year)",
    "CREATE FULLTEXT INDEX question_text IF NOT EXISTS FOR (q:Question) ON EACH [q.question, q.topicTags]",
)

Runner = Callable[..., List[Dict[str, Any]]]


def _now() -> str:
    # microsecond resolution keeps insertion order sortable
    t = time.time()
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(t)) + f".{int((t % 1) * 1_000_000):06d}Z"


@dataclass
class DuplicateGroup:
    exam: Optional[str]
    year: Optional[int]
    lang: Optional[str]
    prefix: str
    members: List[Dict[str, Any]] = field(default_factory=list)  # oldest first

    @property
    def ids(self) -> List[str]:
        return [m["id"] for m in self.members]


class QuestionStore:
    """Create/find/update/delete over Question nodes.

    ``run`` defaults to the shared Neo4j connector; tests inject a fake runner.
    """

    def __init__(self, run: Optional[Runner] = None) -> None:
        self._run = run or run_cypher

    def ensure_indexes(self) -> None:
        for stmt in INDEX_STATEMENTS:
            self._run(stmt)

    def insert(self, record: QuestionRecord) -> str:
        props = record.to_properties()
        props["id"] = uuid.uuid4().hex
        now = _now()
        props["createdAt"] = now
        props["updatedAt"] = now
        # null properties are not stored by Neo4j
        props = {k: v for k, v in props.items() if v is not None}
        try:
            self._run("CREATE (q:Question) SET q = $props RETURN q.id AS id", {"props": props})
        except Exception as exc:
            raise PersistenceError(f"insert failed for {record.source_link}: {exc}") from exc
        return props["id"]

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        res = self._run("MATCH (q:Question {id: $id}) RETURN properties(q) AS q", {"id": record_id})
        return res[0]["q"] if res else None

    def count(self) -> int:
        res = self._run("MATCH (q:Question) RETURN count(q) AS cnt")
        return int((res[0].get("cnt") if res else 0) or 0)

    def iter_batches(self, batch_size: int = 100) -> Iterator[List[Dict[str, Any]]]:
        """Forward-only keyset cursor over all records ordered by id."""
        after: Optional[str] = None
        while True:
            rows = self._run(
                "MATCH (q:Question) WHERE $after IS NULL OR q.id > $after "
                "WITH q ORDER BY q.id LIMIT $limit "
                "RETURN properties(q) AS q",
                {"after": after, "limit": int(batch_size)},
            )
            batch = [r["q"] for r in rows]
            if not batch:
                return
            yield batch
            if len(batch) < batch_size:
                return
            after = batch[-1]["id"]

    def apply_patch(self, record_id: str, patch: QuestionPatch) -> None:
        changes = patch.to_update()
        if not changes:
            return
        # setting a property to null removes it
        try:
            self._run(
                "MATCH (q:Question {id: $id}) SET q += $changes, q.updatedAt = $now",
                {"id": record_id, "changes": changes, "now": _now()},
            )
        except Exception as exc:
            raise PersistenceError(f"update failed for {record_id}: {exc}") from exc

    def delete(self, record_id: str) -> None:
        try:
            self._run("MATCH (q:Question {id: $id}) DELETE q", {"id": record_id})
        except Exception as exc:
            raise PersistenceError(f"delete failed for {record_id}: {exc}") from exc

    def duplicate_groups(self, prefix_chars: int) -> List[DuplicateGroup]:
        rows = self._run(
            "MATCH (q:Question) "
            "WITH q ORDER BY q.createdAt, q.id "
            "WITH q.exam AS exam, q.year AS year, q.lang AS lang, "
            "     left(coalesce(q.question, ''), $prefix) AS prefix, "
            "     collect({id: q.id, verified: coalesce(q.verified, false), "
            "              sourceLink: q.sourceLink, createdAt: q.createdAt}) AS members "
            "WHERE size(members) > 1 "
            "RETURN exam, year, lang, prefix, members",
            {"prefix": int(prefix_chars)},
        )
        return [
            DuplicateGroup(
                exam=r.get("exam"),
                year=r.get("year"),
                lang=r.get("lang"),
                prefix=r.get("prefix") or "",
                members=list(r.get("members") or []),
            )
            for r in rows
        ]

    def counts_by_exam(self) -> List[Dict[str, Any]]:
        rows = self._run(
            "MATCH (q:Question) RETURN q.exam AS exam, count(q) AS count ORDER BY count DESC"
        )
        return [{"exam": r.get("exam"), "count": r.get("count")} for r in rows]

    def search(
        self,
        *,
        exam: Optional[str] = None,
        year: Optional[int] = None,
        text: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"exam": exam, "year": year, "limit": int(limit)}
        where = "($exam IS NULL OR q.exam = $exam) AND ($year IS NULL OR q.year = $year)"
        if text:
            params["text"] = text
            query = (
                "CALL db.index.fulltext.queryNodes('question_text', $text) YIELD node AS q, score "
                f"WHERE {where} "
                "WITH q, score ORDER BY score DESC LIMIT $limit "
                "RETURN properties(q) AS q"
            )
        else:
            query = (
                f"MATCH (q:Question) WHERE {where} "
                "WITH q ORDER BY q.year DESC, q.createdAt LIMIT $limit "
                "RETURN properties(q) AS q"
            )
        return [r["q"] for r in self._run(query, params)]


def get_question_store() -> QuestionStore:
    return QuestionStore()
