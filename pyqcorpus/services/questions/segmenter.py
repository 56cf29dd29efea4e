"""Split extracted paper text into candidate question strings.

A single forward pass over trimmed, non-empty lines. Lines are merged into a
buffer until it ends with '?', an enumerator line starts a new question, or the
buffer grows past the length ceiling. Compound questions with numbered sub-parts
are kept whole unless a '?' closes an earlier part.
"""

from __future__ import annotations

import re
from typing import Iterator, List

from pyqcorpus import config

_ENUMERATOR = r"(?:\d+[.)]|Q\.?\s*\d+|\(\w\))"
_ENUMERATOR_RE = re.compile(rf"^{_ENUMERATOR}", re.IGNORECASE)
# "...? 2. Next question" on one line
_INLINE_SPLIT_RE = re.compile(rf"(?<=\?)\s+(?={_ENUMERATOR}\s)", re.IGNORECASE)
_BOILERPLATE_RE = re.compile(r"^(?:page|continued|see|refer)\b", re.IGNORECASE)


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _lines(text: str) -> Iterator[str]:
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        for part in _INLINE_SPLIT_RE.split(line):
            part = part.strip()
            if part:
                yield part


def is_valid_candidate(q: str) -> bool:
    return (
        config.QUESTION_MIN_CHARS <= len(q) <= config.QUESTION_MAX_CHARS
        and "?" in q
        and not _BOILERPLATE_RE.match(q[:20])
    )


def segment(text: str) -> List[str]:
    if not text or len(text) < 10:
        return []

    candidates: List[str] = []
    buf = ""
    for line in _lines(text):
        merged = f"{buf} {line}" if buf else line
        if merged.endswith("?"):
            candidates.append(_collapse(merged))
            buf = ""
        elif _ENUMERATOR_RE.match(line):
            if "?" in buf:
                candidates.append(_collapse(buf))
            buf = line
        else:
            buf = merged
            if len(buf) > config.QUESTION_MAX_CHARS and "?" in buf:
                parts = buf.split("?")
                for part in parts[:-1]:
                    candidates.append(_collapse(part + "?"))
                buf = parts[-1].strip()

    if "?" in buf:
        candidates.append(_collapse(buf))

    out: List[str] = []
    seen = set()
    for q in candidates:
        if q in seen or not is_valid_candidate(q):
            continue
        seen.add(q)
        out.append(q)
    return out
