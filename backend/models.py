"""Data models and types used across the audit engine.

Request validation and HTTP response models are in schemas.py.
Records produced while crawling and scoring live here; every record is
built once and never mutated afterwards.
"""

from typing import Literal, TypedDict

Severity = Literal["error", "warning", "info"]
CrawlSource = Literal["single", "sitemap", "bfs"]
Strategy = Literal["mobile", "desktop"]


class Issue(TypedDict):
    """A single weighted finding."""

    severity: Severity
    category: str
    message: str
    details: str | None
    weight: int


class ImageStats(TypedDict):
    total: int
    missing_alt: int
    missing_dimensions: int
    oversized: int


class HeadingCounts(TypedDict):
    h1: int
    h2: int
    h3: int


class PageSignals(TypedDict):
    """Facts extracted from one successfully fetched page."""

    title: str | None
    meta_description: str | None
    heading_counts: HeadingCounts
    word_count: int
    internal_links: list[str]
    top_terms: list[str]
    content_fingerprint: str
    image_stats: ImageStats
    has_canonical: bool
    has_viewport: bool
    robots_meta: str
    has_open_graph: bool
    has_structured_data: bool
    has_favicon: bool
    has_charset: bool
    has_lang: bool
    has_meta_keywords: bool
    generic_anchor_count: int
    html_length: int


class ParsedDocument(TypedDict):
    """Signals plus the transient text needed by the rule battery."""

    signals: PageSignals
    visible_text: str
    heading_texts: list[str]
    link_candidates: list[str]
    image_sources: list[str]


class FetchedPage(TypedDict):
    url: str
    final_url: str
    status_code: int
    html: str
    response_ms: int
    redirected: bool


class SiteFiles(TypedDict):
    """Result of the robots.txt and sitemap.xml probes for one origin."""

    robots_txt: bool
    sitemap_xml: bool


class PageResult(TypedDict):
    url: str
    score: int
    issues: list[Issue]
    signals: PageSignals | None


class RedirectTrace(TypedDict):
    chain: list[str]
    hops: int
    has_loop: bool


class DuplicateGroup(TypedDict):
    value: str
    count: int
    urls: list[str]


class NearDuplicatePair(TypedDict):
    urls: list[str]
    similarity: float


class TechnicalSummary(TypedDict):
    """Cross-page findings for a multi-page crawl."""

    crawl_source: CrawlSource
    orphan_page_urls: list[str]
    redirect_chain_examples: list[RedirectTrace]
    duplicate_title_groups: list[DuplicateGroup]
    duplicate_meta_groups: list[DuplicateGroup]
    duplicate_content_groups: list[DuplicateGroup]
    near_duplicate_pairs: list[NearDuplicatePair]
    thin_page_ratio: float


class PageSpeedMetrics(TypedDict):
    strategy: Strategy
    performance_score: int | None
    lcp_ms: float | None
    cls: float | None
    inp_ms: float | None
    fcp_ms: float | None
    speed_index_ms: float | None
    is_mobile_friendly: bool | None


class PageSpeedReport(TypedDict):
    mobile: PageSpeedMetrics | None
    desktop: PageSpeedMetrics | None


class PageSummary(TypedDict):
    url: str
    score: int
    issues: list[Issue]


class AuditReport(TypedDict):
    """Final output of one audit run."""

    url: str
    final_score: int
    grade: str
    issues: list[Issue]
    pages_audited: int
    crawl_source: CrawlSource
    technical_summary: TechnicalSummary | None
    page_speed: PageSpeedReport
    pages: list[PageSummary]
