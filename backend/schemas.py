"""Pydantic schemas for the audit request and report."""

from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIN_KEYWORD_LENGTH = 2
MAX_KEYWORD_LENGTH = 200


class AuditRequest(BaseModel):
    """Request body for POST /audit."""

    model_config = ConfigDict(frozen=True)

    url: str
    focus_keyword: str | None = None
    crawl_mode: Literal["single", "fullsite"] = "single"
    max_pages: int = Field(default=25, ge=1, le=100)

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, value: object) -> str:
        normalized = str(value or "").strip()
        try:
            parsed = urlparse(normalized)
        except ValueError as exc:
            raise ValueError("URL is malformed") from exc
        if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
            raise ValueError("URL must be an absolute http(s) URL")
        return normalized

    @field_validator("focus_keyword", mode="before")
    @classmethod
    def validate_focus_keyword(cls, value: object) -> str | None:
        if value is None:
            return None
        normalized = str(value).strip()
        if not normalized:
            return None
        if not MIN_KEYWORD_LENGTH <= len(normalized) <= MAX_KEYWORD_LENGTH:
            raise ValueError(
                f"Focus keyword must be {MIN_KEYWORD_LENGTH}-{MAX_KEYWORD_LENGTH} characters"
            )
        return normalized


class IssueItem(BaseModel):
    severity: Literal["error", "warning", "info"]
    category: str
    message: str
    details: str | None = None
    weight: int


class DuplicateGroupItem(BaseModel):
    value: str
    count: int
    urls: list[str]


class NearDuplicateItem(BaseModel):
    urls: list[str]
    similarity: float


class RedirectTraceItem(BaseModel):
    chain: list[str]
    hops: int
    has_loop: bool


class TechnicalSummaryItem(BaseModel):
    """Cross-page findings of a multi-page crawl."""

    crawl_source: Literal["single", "sitemap", "bfs"]
    orphan_page_urls: list[str]
    redirect_chain_examples: list[RedirectTraceItem]
    duplicate_title_groups: list[DuplicateGroupItem]
    duplicate_meta_groups: list[DuplicateGroupItem]
    duplicate_content_groups: list[DuplicateGroupItem]
    near_duplicate_pairs: list[NearDuplicateItem]
    thin_page_ratio: float


class PageSpeedItem(BaseModel):
    strategy: Literal["mobile", "desktop"]
    performance_score: int | None = None
    lcp_ms: float | None = None
    cls: float | None = None
    inp_ms: float | None = None
    fcp_ms: float | None = None
    speed_index_ms: float | None = None
    is_mobile_friendly: bool | None = None


class PageSpeedReportItem(BaseModel):
    mobile: PageSpeedItem | None = None
    desktop: PageSpeedItem | None = None


class PageSummaryItem(BaseModel):
    url: str
    score: int
    issues: list[IssueItem]


class AuditReportResponse(BaseModel):
    """Full audit report returned by POST /audit."""

    url: str
    final_score: int
    grade: str
    issues: list[IssueItem]
    pages_audited: int
    crawl_source: Literal["single", "sitemap", "bfs"]
    technical_summary: TechnicalSummaryItem | None = None
    page_speed: PageSpeedReportItem
    pages: list[PageSummaryItem]
