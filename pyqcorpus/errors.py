"""Exception types shared by the ingestion pipeline and the corpus jobs.

None of these abort a crawl or a batch job; callers log them and move on to the
next page, document, backend, or record.
"""


class PyqCorpusError(Exception):
    pass


class FetchError(PyqCorpusError):
    """A page or document download failed (network error, timeout, non-2xx)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class OCRBackendError(PyqCorpusError):
    """A fallback extraction backend failed or answered with an unusable payload."""

    def __init__(self, backend: str, reason: str):
        super().__init__(f"{backend}: {reason}")
        self.backend = backend
        self.reason = reason


class PersistenceError(PyqCorpusError):
    """A single-record write to the corpus store failed."""


class ValidationFailure(PyqCorpusError):
    """A stored record is invalid and could not be repaired by the cleanup job."""

    def __init__(self, record_id: str, field: str, reason: str):
        super().__init__(f"{record_id}.{field}: {reason}")
        self.record_id = record_id
        self.field = field
        self.reason = reason
