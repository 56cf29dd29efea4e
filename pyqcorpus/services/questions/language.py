"""Script-based language detection for question text.

Languages sharing a script (Marathi/Nepali with Hindi, Assamese with Bengali)
cannot be told apart here and resolve to the first listed language.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from pyqcorpus import config

SCRIPTS: Dict[str, "re.Pattern[str]"] = {
    "hi": re.compile(r"[\u0900-\u097F]"),
    "ta": re.compile(r"[\u0B80-\u0BFF]"),
    "te": re.compile(r"[\u0C00-\u0C7F]"),
    "kn": re.compile(r"[\u0C80-\u0CFF]"),
    "ml": re.compile(r"[\u0D00-\u0D7F]"),
    "gu": re.compile(r"[\u0A80-\u0AFF]"),
    "pa": re.compile(r"[\u0A00-\u0A7F]"),
    "bn": re.compile(r"[\u0980-\u09FF]"),
    "or": re.compile(r"[\u0B00-\u0B7F]"),
    "ur": re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]"),
    "si": re.compile(r"[\u0D80-\u0DFF]"),
}
_LATIN_RE = re.compile(r"[A-Za-z]")
_LATIN_WORD_RE = re.compile(r"[A-Za-z]+")

SCRIPT_SHARE = 0.05
LATIN_WORD_SHARE = 0.3


def detect_languages(text: Optional[str]) -> List[str]:
    if not text:
        return [config.DEFAULT_LANG]
    found: List[str] = []
    total = len(text)
    for lang, pattern in SCRIPTS.items():
        if len(pattern.findall(text)) / total > SCRIPT_SHARE:
            found.append(lang)

    words = text.split()
    latin_words = _LATIN_WORD_RE.findall(text)
    if words and len(latin_words) / len(words) > LATIN_WORD_SHARE:
        found.append("en")
    elif not found:
        found.append("en")
    return found


def is_multi_language(text: Optional[str]) -> bool:
    return len(detect_languages(text)) > 1


def primary_language(text: Optional[str]) -> str:
    langs = detect_languages(text)
    non_en = [lang for lang in langs if lang != "en"]
    return non_en[0] if non_en else langs[0]


def dominant_language(text: str, ratio: Optional[float] = None) -> str:
    """Pick the language whose characters outnumber the other script by ``ratio``.

    Compares the primary non-Latin script against Latin letters; when neither
    side clears the margin the primary language is kept.
    """
    ratio = config.mixed_language_ratio() if ratio is None else ratio
    primary = primary_language(text)
    if primary == "en":
        return primary
    script_chars = len(SCRIPTS[primary].findall(text))
    latin_chars = len(_LATIN_RE.findall(text))
    if script_chars > latin_chars * ratio:
        return primary
    if latin_chars > script_chars * ratio:
        return "en"
    return primary
