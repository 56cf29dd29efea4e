from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

METHOD_NATIVE = "native"
METHOD_NONE = "none"


@dataclass
class RawDocument:
    url: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ExtractedText:
    text: str
    method: str

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass
class ExtractionResult:
    """Outcome of one extraction tier. ``ok`` is False on any failure."""

    method: str
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def char_count(self) -> int:
        return len(self.text)

    def sufficient(self, min_chars: int) -> bool:
        return self.ok and self.char_count > min_chars


class Extractor:
    """One extraction tier. Subclasses implement extract(); run() never raises."""

    name: str = "base"

    def available(self) -> bool:
        return True

    def extract(self, doc: RawDocument) -> str:
        raise NotImplementedError

    def run(self, doc: RawDocument) -> ExtractionResult:
        try:
            text = self.extract(doc) or ""
        except Exception as exc:
            logger.warning("%s failed for %s: %s", self.name, doc.url, exc)
            return ExtractionResult(method=self.name, error=str(exc) or exc.__class__.__name__)
        return ExtractionResult(method=self.name, text=text)
