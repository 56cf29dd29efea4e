from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyqcorpus import config


class QuestionRecord(BaseModel):
    """A previous-year question as written by the ingestion pipeline.

    Field names are snake_case in Python and camelCase in the store.
    """

    model_config = ConfigDict(populate_by_name=True)

    exam: str
    level: str = ""
    paper: str = ""
    year: Optional[int] = None
    question: str
    topic_tags: List[str] = Field(default_factory=list, alias="topicTags")
    keywords: List[str] = Field(default_factory=list)
    analysis: str = ""
    source_link: str = Field("", alias="sourceLink")
    lang: str = config.DEFAULT_LANG
    verified: bool = False

    @field_validator("question")
    @classmethod
    def _question_shape(cls, v: str) -> str:
        v = " ".join((v or "").split())
        if not (config.QUESTION_MIN_CHARS <= len(v) <= config.QUESTION_MAX_CHARS):
            raise ValueError(f"question length {len(v)} outside [{config.QUESTION_MIN_CHARS}, {config.QUESTION_MAX_CHARS}]")
        if "?" not in v:
            raise ValueError("question must contain '?'")
        return v

    @field_validator("lang")
    @classmethod
    def _lang_allowed(cls, v: str) -> str:
        return v if v in config.ALLOWED_LANGS else config.DEFAULT_LANG

    @field_validator("topic_tags")
    @classmethod
    def _cap_tags(cls, v: List[str]) -> List[str]:
        return [t.strip() for t in v if t and t.strip()][: config.MAX_TOPIC_TAGS]

    @field_validator("keywords")
    @classmethod
    def _cap_keywords(cls, v: List[str]) -> List[str]:
        return [k.strip() for k in v if k and k.strip()][: config.MAX_KEYWORDS]

    def to_properties(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class QuestionPatch(BaseModel):
    """Field-level changes for one stored record; only explicitly set fields are written."""

    model_config = ConfigDict(populate_by_name=True)

    exam: Optional[str] = None
    level: Optional[str] = None
    paper: Optional[str] = None
    year: Optional[int] = None
    question: Optional[str] = None
    answer: Optional[str] = None
    theme: Optional[str] = None
    topic_tags: Optional[List[str]] = Field(None, alias="topicTags")
    keywords: Optional[List[str]] = None
    analysis: Optional[str] = None
    source_link: Optional[str] = Field(None, alias="sourceLink")
    lang: Optional[str] = None
    verified: Optional[bool] = None
    needs_review: Optional[bool] = Field(None, alias="needsReview")
    review_reasons: Optional[List[str]] = Field(None, alias="reviewReasons")

    def to_update(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set


class FixCounters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam: int = 0
    level: int = 0
    paper: int = 0
    year: int = 0
    question: int = 0
    topic_tags: int = Field(0, alias="topicTags")
    keywords: int = 0
    analysis: int = 0
    lang: int = 0
    mixed_language: int = Field(0, alias="mixedLanguage")
    verified: int = 0


class CleanupStats(BaseModel):
    total: int = 0
    processed: int = 0
    updated: int = 0
    deleted: int = 0
    duplicates: int = 0
    invalid: int = 0
    errors: int = 0
    fixed: FixCounters = Field(default_factory=FixCounters)


class DedupStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    groups: int = 0
    deleted: int = 0
    kept: List[str] = Field(default_factory=list)
    removed_ids: List[str] = Field(default_factory=list, alias="removedIds")


class JobRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dry_run: bool = Field(True, alias="dryRun")
    batch_size: int = Field(config.DEFAULT_BATCH_SIZE, alias="batchSize", ge=1, le=1000)
    aggressive: bool = False
    admin_key: Optional[str] = Field(None, alias="adminKey")
