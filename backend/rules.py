"""Rule table and per-page rule battery.

Weights and thresholds are immutable dataclasses bundled in AuditConfig
and passed explicitly to everything that scores. Each rule is a pure
function of (PageFacts, AuditConfig) returning an Issue or None;
run_rules evaluates them in RULES order.
"""

from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urlparse

from models import Issue, PageSignals, Severity


@dataclass(frozen=True)
class AuditWeights:
    # per-page rules
    https_missing: int = 20
    title_missing: int = 18
    title_short: int = 6
    title_long: int = 4
    meta_desc_missing: int = 12
    meta_desc_short: int = 4
    meta_keywords: int = 1
    viewport_missing: int = 15
    noindex: int = 25
    charset_missing: int = 5
    lang_missing: int = 4
    h1_missing: int = 10
    h1_multiple: int = 5
    h2_missing: int = 3
    heading_structure: int = 4
    thin_content: int = 8
    focus_keyword_missing: int = 8
    focus_keyword_weak: int = 4
    focus_keyword_heading: int = 3
    canonical_missing: int = 3
    og_missing: int = 4
    structured_data_missing: int = 5
    favicon_missing: int = 2
    robots_txt_missing: int = 3
    sitemap_missing: int = 2
    images_no_alt: int = 8
    image_missing_dimensions: int = 4
    image_large_files: int = 7
    internal_links_low: int = 2
    anchor_text_generic: int = 3
    broken_links: int = 8
    page_speed_slow: int = 6
    redirect_chain: int = 4
    crawl_fail: int = 100
    # cross-page findings
    duplicate_titles: int = 6
    duplicate_meta: int = 4
    duplicate_content: int = 6
    orphan_pages: int = 4
    near_duplicates: int = 6
    thin_site_info: int = 2
    thin_site_warning: int = 6
    redirect_chains_site: int = 4
    redirect_loop: int = 8
    # external performance
    perf_poor: int = 6
    perf_needs_work: int = 3
    lcp_slow: int = 4
    cls_high: int = 3
    inp_slow: int = 3
    not_mobile_friendly: int = 5


@dataclass(frozen=True)
class AuditThresholds:
    title_min_chars: int = 30
    title_max_chars: int = 60
    meta_desc_min_chars: int = 120
    thin_content_words: int = 250
    keyword_weak_min_words: int = 350
    min_internal_links: int = 3
    few_links_min_html_length: int = 1000
    slow_response_ms: int = 1800
    oversized_image_bytes: int = 350_000
    image_sample_size: int = 8
    link_sample_size: int = 12
    sitemap_fetch_cap: int = 20
    redirect_max_hops: int = 6
    near_duplicate_min_words: int = 120
    near_duplicate_similarity: float = 0.72
    near_duplicate_examples: int = 5
    issue_recurrence_ratio: float = 0.2
    thin_site_ratio: float = 0.3
    perf_poor_below: int = 50
    perf_good_from: int = 90
    lcp_slow_ms: float = 4000.0
    cls_high: float = 0.25
    inp_slow_ms: float = 500.0


@dataclass(frozen=True)
class AuditConfig:
    weights: AuditWeights = field(default_factory=AuditWeights)
    thresholds: AuditThresholds = field(default_factory=AuditThresholds)


@dataclass(frozen=True)
class PageFacts:
    """Everything the rule battery needs to know about one fetched page."""

    url: str
    signals: PageSignals
    response_ms: int = 0
    redirected: bool = False
    robots_txt_found: bool = True
    sitemap_found: bool = True
    broken_links: int = 0
    sampled_links: int = 0
    focus_keyword: str | None = None
    keyword_body_mentions: int = 0
    keyword_heading_mentions: int = 0


def make_issue(
    severity: Severity,
    category: str,
    message: str,
    weight: int,
    details: str | None = None,
) -> Issue:
    return {
        "severity": severity,
        "category": category,
        "message": message,
        "details": details,
        "weight": max(0, min(100, int(weight))),
    }


def crawl_failure_issue(reason: str, config: AuditConfig) -> Issue:
    return make_issue("error", "Crawl", "Failed to fetch URL", config.weights.crawl_fail, reason or "Unknown error")


Rule = Callable[[PageFacts, AuditConfig], Issue | None]


def check_https(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if urlparse(facts.url).scheme.lower() == "https":
        return None
    return make_issue(
        "error",
        "Security",
        "Site not using HTTPS",
        config.weights.https_missing,
        "HTTPS improves security and is a ranking factor.",
    )


def check_title_missing(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["title"] is not None:
        return None
    return make_issue(
        "error",
        "On-Page",
        "Missing page title",
        config.weights.title_missing,
        "Pages should have a unique, descriptive title tag.",
    )


def check_title_length(facts: PageFacts, config: AuditConfig) -> Issue | None:
    title = facts.signals["title"]
    if title is None:
        return None
    t = config.thresholds
    if len(title) < t.title_min_chars:
        return make_issue(
            "warning",
            "On-Page",
            "Title too short",
            config.weights.title_short,
            f"Title is {len(title)} chars. Recommended: 50-60 characters.",
        )
    if len(title) > t.title_max_chars:
        return make_issue(
            "warning",
            "On-Page",
            "Title too long",
            config.weights.title_long,
            f"Title is {len(title)} chars. May be truncated in SERPs.",
        )
    return None


def check_meta_description(facts: PageFacts, config: AuditConfig) -> Issue | None:
    desc = facts.signals["meta_description"]
    if desc is None:
        return make_issue(
            "warning",
            "On-Page",
            "Missing meta description",
            config.weights.meta_desc_missing,
            "Add a meta description for better SERP snippets.",
        )
    if len(desc) < config.thresholds.meta_desc_min_chars:
        return make_issue(
            "info",
            "On-Page",
            "Meta description could be longer",
            config.weights.meta_desc_short,
            f"Current: {len(desc)} chars. Recommended: 150-160.",
        )
    return None


def check_meta_keywords(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if not facts.signals["has_meta_keywords"]:
        return None
    return make_issue(
        "info",
        "On-Page",
        "Meta keywords tag present",
        config.weights.meta_keywords,
        "Google ignores meta keywords. Consider removing.",
    )


def check_viewport(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_viewport"]:
        return None
    return make_issue(
        "error",
        "Mobile",
        "Missing viewport meta tag",
        config.weights.viewport_missing,
        "Required for mobile-friendly pages.",
    )


def check_noindex(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if "noindex" not in facts.signals["robots_meta"].lower():
        return None
    return make_issue(
        "warning",
        "Technical",
        "Page has noindex",
        config.weights.noindex,
        "This page will not be indexed by search engines.",
    )


def check_charset(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_charset"]:
        return None
    return make_issue(
        "info",
        "Technical",
        "No charset declaration",
        config.weights.charset_missing,
        "Add charset in meta tag for proper character encoding.",
    )


def check_lang(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_lang"]:
        return None
    return make_issue(
        "info",
        "Technical",
        "Missing lang attribute on html",
        config.weights.lang_missing,
        "Add lang attribute (e.g. lang='en') for accessibility.",
    )


def check_h1(facts: PageFacts, config: AuditConfig) -> Issue | None:
    count = facts.signals["heading_counts"]["h1"]
    if count == 0:
        return make_issue(
            "warning",
            "On-Page",
            "Missing H1 heading",
            config.weights.h1_missing,
            "Pages should have exactly one H1 for structure.",
        )
    if count > 1:
        return make_issue(
            "info",
            "On-Page",
            "Multiple H1 headings",
            config.weights.h1_multiple,
            f"Found {count} H1s. Consider using a single H1 per page.",
        )
    return None


def check_h2(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["heading_counts"]["h2"] > 0:
        return None
    return make_issue(
        "info",
        "On-Page",
        "No H2 headings",
        config.weights.h2_missing,
        "Use H2 subheadings for better content structure.",
    )


def check_heading_hierarchy(facts: PageFacts, config: AuditConfig) -> Issue | None:
    counts = facts.signals["heading_counts"]
    if counts["h3"] == 0 or counts["h2"] > 0:
        return None
    return make_issue(
        "info",
        "On-Page",
        "Heading hierarchy may be inconsistent",
        config.weights.heading_structure,
        "H3 headings found without H2 structure. Keep heading levels sequential.",
    )


def check_thin_content(facts: PageFacts, config: AuditConfig) -> Issue | None:
    words = facts.signals["word_count"]
    if not 0 < words < config.thresholds.thin_content_words:
        return None
    return make_issue(
        "warning",
        "Content",
        "Thin content detected",
        config.weights.thin_content,
        f"Only {words} visible words found. Consider adding deeper topical coverage.",
    )


def check_focus_keyword_body(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if not facts.focus_keyword:
        return None
    if facts.keyword_body_mentions == 0:
        return make_issue(
            "warning",
            "Content",
            "Focus keyword not found in page body",
            config.weights.focus_keyword_missing,
            f'The focus keyword "{facts.focus_keyword}" was not detected in visible page text.',
        )
    if facts.keyword_body_mentions < 2 and facts.signals["word_count"] > config.thresholds.keyword_weak_min_words:
        return make_issue(
            "info",
            "Content",
            "Focus keyword appears weakly in content",
            config.weights.focus_keyword_weak,
            f'Detected {facts.keyword_body_mentions} mention(s) of "{facts.focus_keyword}" in page body.',
        )
    return None


def check_focus_keyword_heading(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if not facts.focus_keyword or facts.keyword_heading_mentions > 0:
        return None
    return make_issue(
        "info",
        "On-Page",
        "Focus keyword missing from H1/H2/H3",
        config.weights.focus_keyword_heading,
        f'Add "{facts.focus_keyword}" naturally in at least one major heading.',
    )


def check_canonical(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_canonical"]:
        return None
    return make_issue(
        "info",
        "Technical",
        "No canonical URL",
        config.weights.canonical_missing,
        "Consider adding a canonical link for duplicate content.",
    )


def check_open_graph(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_open_graph"]:
        return None
    return make_issue(
        "info",
        "Social",
        "Missing Open Graph tags",
        config.weights.og_missing,
        "Add og:title, og:description, og:image for social sharing.",
    )


def check_structured_data(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_structured_data"]:
        return None
    return make_issue(
        "info",
        "Technical",
        "No structured data (JSON-LD)",
        config.weights.structured_data_missing,
        "Schema.org markup can improve rich snippets in SERPs.",
    )


def check_favicon(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.signals["has_favicon"]:
        return None
    return make_issue(
        "info",
        "Technical",
        "No favicon detected",
        config.weights.favicon_missing,
        "Improves brand recognition in browser tabs.",
    )


def check_robots_txt(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.robots_txt_found:
        return None
    return make_issue(
        "info",
        "Technical",
        "No robots.txt found",
        config.weights.robots_txt_missing,
        "Robots.txt helps search engines crawl your site.",
    )


def check_sitemap(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.sitemap_found:
        return None
    return make_issue(
        "info",
        "Technical",
        "No sitemap.xml found",
        config.weights.sitemap_missing,
        "Sitemap.xml helps search engines discover and index all pages efficiently.",
    )


def check_image_alt(facts: PageFacts, config: AuditConfig) -> Issue | None:
    stats = facts.signals["image_stats"]
    if stats["total"] == 0 or stats["missing_alt"] == 0:
        return None
    return make_issue(
        "warning",
        "Accessibility",
        "Images missing alt text",
        min(config.weights.images_no_alt, stats["missing_alt"] * 2),
        f"{stats['missing_alt']} of {stats['total']} images lack alt attributes.",
    )


def check_image_dimensions(facts: PageFacts, config: AuditConfig) -> Issue | None:
    stats = facts.signals["image_stats"]
    if stats["total"] == 0 or stats["missing_dimensions"] == 0:
        return None
    return make_issue(
        "info",
        "Image SEO",
        "Images missing explicit dimensions",
        config.weights.image_missing_dimensions,
        f"{stats['missing_dimensions']} of {stats['total']} images have no width/height attributes.",
    )


def check_image_size(facts: PageFacts, config: AuditConfig) -> Issue | None:
    oversized = facts.signals["image_stats"]["oversized"]
    if oversized == 0:
        return None
    kb = config.thresholds.oversized_image_bytes // 1000
    return make_issue(
        "warning",
        "Image SEO",
        "Large image files detected",
        config.weights.image_large_files,
        f"{oversized} sampled images exceed ~{kb}KB. Compress or modernize formats (WebP/AVIF).",
    )


def check_internal_links(facts: PageFacts, config: AuditConfig) -> Issue | None:
    count = len(facts.signals["internal_links"])
    t = config.thresholds
    if count >= t.min_internal_links or facts.signals["html_length"] <= t.few_links_min_html_length:
        return None
    return make_issue(
        "info",
        "On-Page",
        "Few internal links",
        config.weights.internal_links_low,
        f"Found {count} internal links. Consider adding more for site structure.",
    )


def check_generic_anchors(facts: PageFacts, config: AuditConfig) -> Issue | None:
    count = facts.signals["generic_anchor_count"]
    if count == 0:
        return None
    return make_issue(
        "info",
        "On-Page",
        "Generic anchor text found",
        config.weights.anchor_text_generic,
        f"{count} generic anchors detected. Use descriptive anchor text for clarity and SEO.",
    )


def check_broken_links(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.broken_links == 0:
        return None
    return make_issue(
        "warning",
        "Technical",
        "Broken links detected",
        min(config.weights.broken_links, facts.broken_links * 2),
        f"{facts.broken_links} of {facts.sampled_links} sampled links are broken or unreachable.",
    )


def check_response_time(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if facts.response_ms <= config.thresholds.slow_response_ms:
        return None
    return make_issue(
        "warning",
        "Performance",
        "Slow initial response",
        config.weights.page_speed_slow,
        f"Server responded in {facts.response_ms}ms. Consider improving server and page speed.",
    )


def check_redirected(facts: PageFacts, config: AuditConfig) -> Issue | None:
    if not facts.redirected:
        return None
    return make_issue(
        "info",
        "Technical",
        "URL redirects before final page",
        config.weights.redirect_chain,
        "Redirect chains can dilute crawl efficiency and page signals.",
    )


RULES: tuple[Rule, ...] = (
    check_https,
    check_title_missing,
    check_title_length,
    check_meta_description,
    check_meta_keywords,
    check_viewport,
    check_noindex,
    check_charset,
    check_lang,
    check_h1,
    check_h2,
    check_heading_hierarchy,
    check_thin_content,
    check_focus_keyword_body,
    check_focus_keyword_heading,
    check_canonical,
    check_open_graph,
    check_structured_data,
    check_favicon,
    check_robots_txt,
    check_sitemap,
    check_image_alt,
    check_image_dimensions,
    check_image_size,
    check_internal_links,
    check_generic_anchors,
    check_broken_links,
    check_response_time,
    check_redirected,
)


def run_rules(facts: PageFacts, config: AuditConfig, rules: tuple[Rule, ...] = RULES) -> list[Issue]:
    issues: list[Issue] = []
    for rule in rules:
        issue = rule(facts, config)
        if issue is not None:
            issues.append(issue)
    return issues
