"""Fallback tier B: Gemini multimodal extraction.

The PDF is sent inline (base64) with an "extract all text" instruction. When the
primary model identifier is rejected by the API, the request is repeated once
against the fallback model.

Configuration via environment variables:

- GEMINI_API_KEY
- GEMINI_BASE_URL (default: https://generativelanguage.googleapis.com/v1beta)
- GEMINI_OCR_MODEL (default: gemini-2.5-flash)
- GEMINI_OCR_FALLBACK_MODEL (default: gemini-2.0-flash)
"""

from __future__ import annotations

import base64
import logging
import os
from typing import Any, Dict, Optional

import httpx

from pyqcorpus import config
from pyqcorpus.errors import OCRBackendError

from .base import Extractor, RawDocument

logger = logging.getLogger(__name__)

METHOD_GEMINI = "gemini_vision"

EXTRACTION_PROMPT = (
    "Extract all text from this PDF exam question paper. Return ONLY the extracted text, "
    "preserving line breaks, question numbers, and formatting. Do not add any explanations, "
    "notes, or analysis."
)


class ModelRejected(OCRBackendError):
    pass


class GeminiVisionExtractor(Extractor):
    name = METHOD_GEMINI

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        timeout: float = config.OCR_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.base_url = (
            base_url or os.getenv("GEMINI_BASE_URL") or "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        self.model = model or os.getenv("GEMINI_OCR_MODEL") or "gemini-2.5-flash"
        self.fallback_model = fallback_model or os.getenv("GEMINI_OCR_FALLBACK_MODEL") or "gemini-2.0-flash"
        self.timeout = float(timeout)
        self.transport = transport

    def available(self) -> bool:
        return bool(self.api_key)

    def extract(self, doc: RawDocument) -> str:
        body = self._request_body(doc)
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                data = self._generate(client, self.model, body)
            except ModelRejected as exc:
                logger.warning("Model %s rejected (%s), retrying with %s", self.model, exc.reason, self.fallback_model)
                data = self._generate(client, self.fallback_model, body)
        return self.first_candidate_text(data)

    @staticmethod
    def _request_body(doc: RawDocument) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": EXTRACTION_PROMPT},
                        {
                            "inline_data": {
                                "mime_type": "application/pdf",
                                "data": base64.b64encode(doc.content).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"temperature": 0.1, "maxOutputTokens": 8000, "topP": 0.8, "topK": 40},
        }

    def _generate(self, client: httpx.Client, model: str, body: Dict[str, Any]) -> Dict[str, Any]:
        r = client.post(f"/models/{model}:generateContent", params={"key": self.api_key}, json=body)
        if r.status_code == 404 or (r.status_code == 400 and "model" in r.text.lower()):
            raise ModelRejected(self.name, f"HTTP {r.status_code} for model {model}")
        r.raise_for_status()
        return r.json() or {}

    @staticmethod
    def first_candidate_text(data: Dict[str, Any]) -> str:
        for cand in data.get("candidates") or []:
            parts = ((cand or {}).get("content") or {}).get("parts") or []
            for part in parts:
                text = (part or {}).get("text")
                if text:
                    return text.strip()
        raise OCRBackendError(METHOD_GEMINI, "response has no text candidate")
