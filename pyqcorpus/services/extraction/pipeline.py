from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pyqcorpus import config
from pyqcorpus.errors import FetchError

from .base import METHOD_NONE, ExtractedText, Extractor, RawDocument
from .gemini_vision import GeminiVisionExtractor
from .mistral_ocr import MistralOCRExtractor
from .native import NativePdfExtractor

logger = logging.getLogger(__name__)


def default_ocr_backends() -> List[Extractor]:
    return [MistralOCRExtractor(), GeminiVisionExtractor()]


class TextExtractionPipeline:
    """Download a document and turn it into text.

    Native extraction runs first; only when it yields ``min_chars`` characters or
    fewer, and the file is no larger than ``max_ocr_bytes``, are the OCR backends
    tried, strictly in order, stopping at the first sufficient result.
    """

    def __init__(
        self,
        fetcher,
        *,
        native: Optional[Extractor] = None,
        ocr_backends: Optional[Sequence[Extractor]] = None,
        min_chars: int = config.MIN_TEXT_CHARS,
        max_ocr_bytes: int = config.MAX_OCR_BYTES,
    ) -> None:
        self.fetcher = fetcher
        self.native = native or NativePdfExtractor()
        self.ocr_backends = list(default_ocr_backends() if ocr_backends is None else ocr_backends)
        self.min_chars = int(min_chars)
        self.max_ocr_bytes = int(max_ocr_bytes)

    def extract_url(self, url: str) -> ExtractedText:
        try:
            content = self.fetcher.fetch_bytes(url)
        except FetchError as exc:
            logger.warning("Skipping document: %s", exc)
            return ExtractedText(text="", method=METHOD_NONE)
        return self.extract_document(RawDocument(url=url, content=content))

    def extract_document(self, doc: RawDocument) -> ExtractedText:
        native = self.native.run(doc)
        if native.sufficient(self.min_chars):
            return ExtractedText(text=native.text, method=native.method)

        logger.info("Native extraction gave %d chars for %s", native.char_count, doc.url)
        if doc.size > self.max_ocr_bytes:
            logger.warning(
                "Document too large for OCR (%.2f MB), keeping native text: %s", doc.size / 1024 / 1024, doc.url
            )
            return ExtractedText(text=native.text, method=native.method)

        for backend in self.ocr_backends:
            if not backend.available():
                logger.debug("OCR backend %s has no credentials, skipping", backend.name)
                continue
            result = backend.run(doc)
            if result.sufficient(self.min_chars):
                logger.info("%s extracted %d chars from %s", backend.name, result.char_count, doc.url)
                return ExtractedText(text=result.text, method=result.method)
            if result.ok:
                logger.warning("%s returned insufficient text (%d chars)", backend.name, result.char_count)

        logger.warning("All extraction tiers exhausted for %s", doc.url)
        return ExtractedText(text="", method=METHOD_NONE)
