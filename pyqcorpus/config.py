"""Process configuration and tunable heuristics.

Credentials and endpoints come from the environment (optionally a project-root
``.env``). The numeric heuristics below are plain module constants so callers and
tests can override them explicitly.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Tuple

# --- Crawl / extraction ---
DEFAULT_EXAM = "UPSC"
DEFAULT_MAX_DEPTH = 2
DEFAULT_MAX_PAGES = 60
PAGE_TIMEOUT = 30.0
DOCUMENT_TIMEOUT = 30.0
OCR_TIMEOUT = 120.0
OCR_UPLOAD_TIMEOUT = 60.0
MIN_TEXT_CHARS = 100  # extraction is "sufficient" only strictly above this
MAX_OCR_BYTES = 50 * 1024 * 1024

# --- Question records ---
QUESTION_MIN_CHARS = 15
QUESTION_MAX_CHARS = 500
DISPLAY_MIN_CHARS = 20
MAX_TOPIC_TAGS = 10
MAX_TOPIC_TAG_CHARS = 100
MAX_KEYWORDS = 8
MAX_KEYWORD_CHARS = 50
EXTRACT_YEAR_MIN = 1950
RECORD_YEAR_MIN = 1990

ALLOWED_LANGS: Tuple[str, ...] = (
    "en", "hi", "ta", "te", "kn", "ml", "mr", "gu", "pa", "bn", "or", "as", "ur", "ne", "si", "multi",
)
DEFAULT_LANG = "en"

# --- Corpus jobs ---
DEDUP_PREFIX_CHARS = 200
EXACT_DUP_PREFIX_CHARS = 500
DEFAULT_BATCH_SIZE = 100

# Curated exam-authority hosts. A leading "." means suffix match on the host;
# otherwise the host must equal the entry or be a subdomain of it.
DEFAULT_OFFICIAL_DOMAINS: Tuple[str, ...] = (
    ".gov.in",
    ".gov.uk",
    ".gov.au",
    ".gov.us",
    ".gov.ca",
    "upsc.gov.in",
    "tnpsc.gov.in",
    "bpsc.bih.nic.in",
    "uppsc.gov.in",
    "mpsc.gov.in",
    "wbpsc.gov.in",
    "gpsc.gujarat.gov.in",
    "ppsc.gov.in",
    "rpsc.rajasthan.gov.in",
    "mppsc.nic.in",
    "hpsc.gov.in",
    "kpsc.kar.nic.in",
    "keralapsc.gov.in",
    "tspsc.gov.in",
    "psc.ap.gov.in",
)


def current_year() -> int:
    return datetime.now().year


def mixed_language_ratio() -> float:
    try:
        return float(os.getenv("PYQ_MIXED_LANGUAGE_RATIO") or 1.5)
    except ValueError:
        return 1.5


def official_domains() -> Tuple[str, ...]:
    raw = os.getenv("PYQ_OFFICIAL_DOMAINS")
    if not raw:
        return DEFAULT_OFFICIAL_DOMAINS
    return tuple(d.strip().lower() for d in raw.split(",") if d.strip())


def user_agent() -> str:
    return os.getenv("PYQ_USER_AGENT") or "PYQ-Crawler/0.1"


def load_env_file(path: str = None) -> None:
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    """
    if path is None:
        root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        path = os.path.join(root_dir, ".env")
    if not os.path.isfile(path):
        return
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if not s or s.startswith("#") or "=" not in s:
                continue
            key, val = s.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")
            if key and (key not in os.environ or not os.environ[key]):
                os.environ[key] = val
