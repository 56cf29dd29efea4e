"""Tiered document text extraction.

- base.py: RawDocument / ExtractedText / Extractor contract
- native.py: pdfplumber text layer
- mistral_ocr.py, gemini_vision.py: OCR fallback tiers
- pipeline.py: ordered fallback driver
"""

from .base import ExtractedText, ExtractionResult, Extractor, RawDocument
from .pipeline import TextExtractionPipeline, default_ocr_backends

__all__ = [
    "ExtractedText",
    "ExtractionResult",
    "Extractor",
    "RawDocument",
    "TextExtractionPipeline",
    "default_ocr_backends",
]
