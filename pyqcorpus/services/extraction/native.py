from __future__ import annotations

import io
import logging

import pdfplumber

from .base import METHOD_NATIVE, Extractor, RawDocument

# pdfminer is noisy on malformed exam scans
logging.getLogger("pdfminer").setLevel(logging.ERROR)


class NativePdfExtractor(Extractor):
    """Text layer extraction with pdfplumber; scanned papers yield little or nothing."""

    name = METHOD_NATIVE

    def extract(self, doc: RawDocument) -> str:
        parts = []
        with pdfplumber.open(io.BytesIO(doc.content)) as pdf:
            for page in pdf.pages:
                parts.append(page.extract_text() or "")
        return "\n".join(p for p in parts if p).strip()
