import httpx
import pytest

from pyqcorpus.errors import FetchError, PersistenceError
from pyqcorpus.services.crawl import CrawlConfig, Crawler, crawl
from pyqcorpus.services.crawl.fetcher import FetchedPage, PageFetcher
from pyqcorpus.services.crawl.ingest import build_records, persist_records
from pyqcorpus.services.extraction.base import ExtractedText

ROOT = "https://upsc.gov.in/"

PAPER_TEXT = (
    "CIVIL SERVICES (PRELIMINARY) EXAMINATION 2019\n"
    "GENERAL STUDIES PAPER I\n"
    "1. Which one of the following is not a Fundamental Right\n"
    "under the Constitution of India?\n"
    "2. Consider the following statements about the Rajya Sabha. Which of the statements given above is correct?\n"
    "Page 3 of 20\n"
)


def _links(*hrefs):
    return "".join(f'<a href="{h}">x</a>' for h in hrefs)


class FakeFetcher:
    def __init__(self, pages, failing=()):
        self.pages = pages
        self.failing = set(failing)
        self.fetched = []

    def fetch_page(self, url):
        self.fetched.append(url)
        if url in self.failing or url not in self.pages:
            raise FetchError(url, "HTTP 500")
        return FetchedPage(url=url, html=self.pages[url])

    extract_links = staticmethod(PageFetcher.extract_links)


class FakePipeline:
    def __init__(self, texts):
        self.texts = texts
        self.urls = []

    def extract_url(self, url):
        self.urls.append(url)
        text = self.texts.get(url, "")
        return ExtractedText(text=text, method="native" if text else "none")


SITE = {
    ROOT: _links("/prelims.html", "/mains.html", "https://evil.example.com/x.html", "https://evil.example.com/p.pdf"),
    "https://upsc.gov.in/prelims.html": _links("/papers/2019-gs1.pdf", "/", "/deep/one.html"),
    "https://upsc.gov.in/mains.html": _links("/papers/2019-gs1.pdf", "/papers/scan.pdf", "/prelims.html"),
    "https://upsc.gov.in/deep/one.html": _links("/deep/two.html", "/papers/deep.pdf"),
    "https://upsc.gov.in/deep/two.html": _links("/papers/too-deep.pdf"),
}


def test_crawl_visits_each_page_once_and_stays_on_host(store):
    fetcher = FakeFetcher(SITE)
    pipeline = FakePipeline({"https://upsc.gov.in/papers/2019-gs1.pdf": PAPER_TEXT})
    cfg = CrawlConfig(root=ROOT, exam="UPSC", level="Prelims", paper="GS-1", theme="Polity", max_depth=2)

    result = Crawler(store, fetcher=fetcher, pipeline=pipeline).crawl(cfg)

    assert len(fetcher.fetched) == len(set(fetcher.fetched))
    assert all(u.startswith(ROOT) for u in fetcher.fetched)
    assert all("evil.example.com" not in u for u in pipeline.urls)
    assert "https://upsc.gov.in/deep/two.html" not in fetcher.fetched
    assert pipeline.urls.count("https://upsc.gov.in/papers/2019-gs1.pdf") == 1
    assert "https://upsc.gov.in/papers/deep.pdf" in pipeline.urls
    assert "https://upsc.gov.in/papers/too-deep.pdf" not in pipeline.urls

    assert result.pages_visited == 4
    assert result.records_inserted == 2
    assert result.documents_processed == 1
    assert result.documents_skipped == 2

    docs = sorted(store.docs.values(), key=lambda d: d["id"])
    assert [d["question"] for d in docs] == [
        "1. Which one of the following is not a Fundamental Right under the Constitution of India?",
        "2. Consider the following statements about the Rajya Sabha. Which of the statements given above is correct?",
    ]
    first = docs[0]
    assert first["exam"] == "UPSC"
    assert first["level"] == "Prelims"
    assert first["paper"] == "GS-1"
    assert first["year"] == 2019
    assert first["topicTags"] == ["Polity"]
    assert first["sourceLink"] == "https://upsc.gov.in/papers/2019-gs1.pdf"
    assert first["verified"] is True
    assert first["lang"] == "en"


def test_page_budget_stops_the_crawl(store):
    fetcher = FakeFetcher(SITE)
    result = Crawler(store, fetcher=fetcher, pipeline=FakePipeline({})).crawl(CrawlConfig(root=ROOT, max_pages=2))
    assert result.pages_visited == 2
    assert fetcher.fetched == [ROOT, "https://upsc.gov.in/prelims.html"]


def test_depth_zero_fetches_only_the_root(store):
    fetcher = FakeFetcher(SITE)
    pipeline = FakePipeline({})
    crawl(CrawlConfig(root=ROOT, max_depth=0), store, fetcher=fetcher, pipeline=pipeline)
    assert fetcher.fetched == [ROOT]


def test_failed_page_does_not_stop_the_crawl(store):
    fetcher = FakeFetcher(SITE, failing={"https://upsc.gov.in/prelims.html"})
    result = Crawler(store, fetcher=fetcher, pipeline=FakePipeline({})).crawl(CrawlConfig(root=ROOT))
    assert result.pages_failed == 1
    assert "https://upsc.gov.in/mains.html" in fetcher.fetched
    assert result.pages_visited == 2


def test_unreachable_root_gives_empty_result(store):
    result = Crawler(store, fetcher=FakeFetcher({}), pipeline=FakePipeline({})).crawl(CrawlConfig(root=ROOT))
    assert result.pages_visited == 0
    assert result.records_inserted == 0
    assert store.count() == 0


def test_invalid_root_is_rejected(store):
    with pytest.raises(ValueError):
        Crawler(store, fetcher=FakeFetcher({}), pipeline=FakePipeline({})).crawl(CrawlConfig(root="upsc.gov.in"))


def _site_transport(routes, requested):
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested.append(url)
        status, body = routes.get(url, (404, ""))
        if 300 <= status < 400:
            return httpx.Response(status, headers={"Location": body})
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler)


def test_redirect_to_another_host_is_never_followed(store):
    requested = []
    routes = {
        ROOT: (200, _links("/go")),
        "https://upsc.gov.in/go": (302, "https://evil.example.com/list.html"),
        "https://evil.example.com/list.html": (200, _links("/planted.pdf")),
    }
    fetcher = PageFetcher(transport=_site_transport(routes, requested))
    pipeline = FakePipeline({})
    result = Crawler(store, fetcher=fetcher, pipeline=pipeline).crawl(CrawlConfig(root=ROOT))

    assert not any("evil.example.com" in u for u in requested)
    assert pipeline.urls == []
    assert result.pages_visited == 1
    assert result.pages_failed == 1


def test_links_resolve_against_the_redirected_url(store):
    requested = []
    routes = {
        ROOT: (200, _links("/go")),
        "https://upsc.gov.in/go": (301, "/papers/index.html"),
        "https://upsc.gov.in/papers/index.html": (200, _links("gs1.pdf", "/")),
    }
    fetcher = PageFetcher(transport=_site_transport(routes, requested))
    pipeline = FakePipeline({})
    result = Crawler(store, fetcher=fetcher, pipeline=pipeline).crawl(CrawlConfig(root=ROOT))

    assert pipeline.urls == ["https://upsc.gov.in/papers/gs1.pdf"]
    assert result.pages_visited == 2


def test_root_without_trailing_slash_is_fetched_once(store):
    site = {
        ROOT: _links("/", "/a.html"),
        "https://upsc.gov.in/a.html": _links("/"),
    }
    fetcher = FakeFetcher(site)
    result = Crawler(store, fetcher=fetcher, pipeline=FakePipeline({})).crawl(
        CrawlConfig(root="https://upsc.gov.in#home", max_depth=1)
    )
    assert fetcher.fetched == [ROOT, "https://upsc.gov.in/a.html"]
    assert result.pages_visited == 2


def test_build_records_uses_fallback_year_and_unverified_source():
    cfg = CrawlConfig(root="https://coaching.example.com/", exam="SSC", year_fallback=2018)
    text = "1. Which gas is most abundant in the Earth's atmosphere?\n"
    records = build_records(text, "https://coaching.example.com/ssc.pdf", cfg)
    assert len(records) == 1
    rec = records[0]
    assert rec.year == 2018
    assert rec.verified is False
    assert rec.topic_tags == []
    assert rec.paper == ""


def test_persist_records_skips_failed_writes():
    class FlakyStore:
        def __init__(self):
            self.n = 0

        def insert(self, record):
            self.n += 1
            if self.n == 1:
                raise PersistenceError("write timeout")
            return "ok"

    cfg = CrawlConfig(root=ROOT)
    records = build_records(PAPER_TEXT, "https://upsc.gov.in/papers/2019-gs1.pdf", cfg)
    assert persist_records(FlakyStore(), records) == 1
