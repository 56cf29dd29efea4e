"""Fallback tier A: Mistral document OCR.

Protocol: upload the PDF to the file store, ask for a signed URL, submit an OCR
request referencing that URL, join the per-page text in page order, and delete
the uploaded file afterwards (best effort).

Configuration via environment variables:

- MISTRAL_API_KEY
- MISTRAL_BASE_URL (default: https://api.mistral.ai/v1)
- MISTRAL_OCR_MODEL (default: mistral-ocr-latest)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx

from pyqcorpus import config
from pyqcorpus.errors import OCRBackendError

from .base import Extractor, RawDocument

logger = logging.getLogger(__name__)

METHOD_MISTRAL = "mistral_ocr"


class MistralOCRExtractor(Extractor):
    name = METHOD_MISTRAL

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = config.OCR_TIMEOUT,
        upload_timeout: float = config.OCR_UPLOAD_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key or os.getenv("MISTRAL_API_KEY")
        self.base_url = (base_url or os.getenv("MISTRAL_BASE_URL") or "https://api.mistral.ai/v1").rstrip("/")
        self.model = model or os.getenv("MISTRAL_OCR_MODEL") or "mistral-ocr-latest"
        self.timeout = float(timeout)
        self.upload_timeout = float(upload_timeout)
        self.transport = transport

    def available(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def extract(self, doc: RawDocument) -> str:
        with self._client() as client:
            file_id = self._upload(client, doc)
            try:
                signed_url = self._signed_url(client, file_id)
                payload = self._ocr(client, signed_url)
            finally:
                self._delete(client, file_id)
        return self.pages_text(payload)

    def _upload(self, client: httpx.Client, doc: RawDocument) -> str:
        r = client.post(
            "/files",
            files={"file": ("document.pdf", doc.content, "application/pdf")},
            data={"purpose": "ocr"},
            timeout=self.upload_timeout,
        )
        r.raise_for_status()
        file_id = (r.json() or {}).get("id")
        if not file_id:
            raise OCRBackendError(self.name, "upload response has no file id")
        logger.info("Uploaded %s to Mistral (file %s)", doc.url, file_id)
        return file_id

    def _signed_url(self, client: httpx.Client, file_id: str) -> str:
        r = client.get(f"/files/{file_id}/url", params={"expiry": 24})
        r.raise_for_status()
        data = r.json() or {}
        url = data.get("url") or data.get("signed_url")
        if not url:
            raise OCRBackendError(self.name, f"no signed URL for file {file_id}")
        return url

    def _ocr(self, client: httpx.Client, signed_url: str) -> Dict[str, Any]:
        r = client.post(
            "/ocr",
            json={"model": self.model, "document": {"type": "document_url", "document_url": signed_url}},
        )
        r.raise_for_status()
        return r.json() or {}

    def _delete(self, client: httpx.Client, file_id: str) -> None:
        try:
            client.delete(f"/files/{file_id}")
        except httpx.HTTPError as exc:
            logger.debug("Could not delete Mistral file %s: %s", file_id, exc)

    @staticmethod
    def pages_text(payload: Dict[str, Any]) -> str:
        pages = payload.get("pages") or []
        if not isinstance(pages, list):
            raise OCRBackendError(METHOD_MISTRAL, "unexpected OCR response shape")
        ordered = sorted(
            (p for p in pages if isinstance(p, dict)),
            key=lambda p: p.get("index", 0),
        )
        chunks = [(p.get("markdown") or p.get("text") or "").strip() for p in ordered]
        return "\n\n".join(c for c in chunks if c)
