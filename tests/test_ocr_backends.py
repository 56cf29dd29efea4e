import base64
import json

import httpx

from pyqcorpus.services.extraction.base import RawDocument
from pyqcorpus.services.extraction.gemini_vision import GeminiVisionExtractor
from pyqcorpus.services.extraction.mistral_ocr import MistralOCRExtractor

DOC = RawDocument(url="https://upsc.gov.in/papers/gs1.pdf", content=b"%PDF-1.4 scanned")


def _mistral_handler(calls, *, ocr_status=200, pages=None):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        assert request.headers["Authorization"] == "Bearer mk"
        if request.method == "POST" and request.url.path.endswith("/files"):
            return httpx.Response(200, json={"id": "file-1"})
        if request.method == "GET" and request.url.path.endswith("/files/file-1/url"):
            assert request.url.params["expiry"] == "24"
            return httpx.Response(200, json={"url": "https://signed.example/file-1"})
        if request.method == "POST" and request.url.path.endswith("/ocr"):
            body = json.loads(request.content)
            assert body["document"]["document_url"] == "https://signed.example/file-1"
            assert body["model"] == "mistral-ocr-latest"
            if ocr_status != 200:
                return httpx.Response(ocr_status, json={"error": "bad"})
            return httpx.Response(200, json={"pages": pages or []})
        if request.method == "DELETE":
            return httpx.Response(200, json={"deleted": True})
        return httpx.Response(404)

    return handler


def test_mistral_upload_sign_ocr_delete_sequence():
    calls = []
    pages = [
        {"index": 1, "markdown": "2. Second page question?"},
        {"index": 0, "markdown": "1. First page question?"},
    ]
    ext = MistralOCRExtractor(
        api_key="mk", base_url="https://mistral.test/v1", transport=httpx.MockTransport(_mistral_handler(calls, pages=pages))
    )
    result = ext.run(DOC)
    assert result.ok
    assert result.method == "mistral_ocr"
    assert result.text == "1. First page question?\n\n2. Second page question?"
    assert calls == [
        ("POST", "/v1/files"),
        ("GET", "/v1/files/file-1/url"),
        ("POST", "/v1/ocr"),
        ("DELETE", "/v1/files/file-1"),
    ]


def test_mistral_deletes_upload_even_when_ocr_fails():
    calls = []
    ext = MistralOCRExtractor(
        api_key="mk", base_url="https://mistral.test/v1", transport=httpx.MockTransport(_mistral_handler(calls, ocr_status=500))
    )
    result = ext.run(DOC)
    assert not result.ok
    assert calls[-1] == ("DELETE", "/v1/files/file-1")


def test_mistral_unavailable_without_key(monkeypatch):
    monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
    assert not MistralOCRExtractor().available()
    monkeypatch.setenv("MISTRAL_API_KEY", "from-env")
    assert MistralOCRExtractor().available()


def _gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_gemini_sends_pdf_inline_and_returns_first_candidate():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        assert request.url.params["key"] == "gk"
        body = json.loads(request.content)
        inline = body["contents"][0]["parts"][1]["inline_data"]
        assert inline["mime_type"] == "application/pdf"
        assert base64.b64decode(inline["data"]) == DOC.content
        return httpx.Response(200, json=_gemini_reply("  1. Extracted question text?  "))

    ext = GeminiVisionExtractor(api_key="gk", base_url="https://gemini.test/v1beta", transport=httpx.MockTransport(handler))
    result = ext.run(DOC)
    assert result.text == "1. Extracted question text?"
    assert seen == ["/v1beta/models/gemini-2.5-flash:generateContent"]


def test_gemini_retries_once_with_fallback_model_when_rejected():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if "primary-model" in request.url.path:
            return httpx.Response(404, json={"error": {"message": "model not found"}})
        return httpx.Response(200, json=_gemini_reply("fallback text"))

    ext = GeminiVisionExtractor(
        api_key="gk",
        base_url="https://gemini.test/v1beta",
        model="primary-model",
        fallback_model="backup-model",
        transport=httpx.MockTransport(handler),
    )
    result = ext.run(DOC)
    assert result.text == "fallback text"
    assert seen == [
        "/v1beta/models/primary-model:generateContent",
        "/v1beta/models/backup-model:generateContent",
    ]


def test_gemini_server_error_does_not_retry():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(503, json={"error": "unavailable"})

    ext = GeminiVisionExtractor(api_key="gk", base_url="https://gemini.test/v1beta", transport=httpx.MockTransport(handler))
    result = ext.run(DOC)
    assert not result.ok
    assert len(seen) == 1


def test_gemini_empty_candidates_is_a_failure():
    ext = GeminiVisionExtractor(
        api_key="gk",
        base_url="https://gemini.test/v1beta",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []})),
    )
    result = ext.run(DOC)
    assert not result.ok
    assert "no text candidate" in result.error
