"""Cross-page aggregation for multi-page crawls.

Works only on completed PageResult lists: exact-duplicate clusters,
orphan candidates from the internal link graph, near-duplicate pairs by
Jaccard similarity of top terms, the thin-site signal, redirect findings
and promotion of issues that recur across pages.
"""

from collections import defaultdict
import logging

from models import (
    CrawlSource,
    DuplicateGroup,
    Issue,
    NearDuplicatePair,
    PageResult,
    RedirectTrace,
    TechnicalSummary,
)
from rules import AuditConfig, make_issue
from urls import normalize_url

logger = logging.getLogger(__name__)


def _normalize_key(value: str | None) -> str:
    return " ".join((value or "").lower().split())


def duplicate_groups(pages: list[PageResult], field: str) -> list[DuplicateGroup]:
    """
    Group pages by the normalized value of a signals field. Empty values are
    ignored; only groups with more than one URL are returned, largest first.
    """
    groups: dict[str, list[str]] = defaultdict(list)
    originals: dict[str, str] = {}
    for page in pages:
        signals = page["signals"]
        if signals is None:
            continue
        key = _normalize_key(signals.get(field))
        if not key:
            continue
        originals.setdefault(key, (signals.get(field) or "").strip())
        groups[key].append(page["url"])

    out: list[DuplicateGroup] = [
        {"value": originals[key], "count": len(urls), "urls": urls}
        for key, urls in groups.items()
        if len(urls) > 1
    ]
    out.sort(key=lambda g: -g["count"])
    return out


def build_link_graph(pages: list[PageResult]) -> dict[str, set[str]]:
    """
    Directed edges between crawled pages, keyed by normalized URL. Links to
    pages outside the crawled set and self-links are dropped.
    """
    crawled = {normalize_url(p["url"]) for p in pages}
    graph: dict[str, set[str]] = {key: set() for key in crawled}
    for page in pages:
        if page["signals"] is None:
            continue
        source = normalize_url(page["url"])
        for link in page["signals"]["internal_links"]:
            target = normalize_url(link)
            if target in crawled and target != source:
                graph[source].add(target)
    return graph


def find_orphan_pages(pages: list[PageResult], start_url: str) -> list[str]:
    """Crawled pages other than the start URL that no other crawled page links to."""
    graph = build_link_graph(pages)
    in_degree: dict[str, int] = {key: 0 for key in graph}
    for targets in graph.values():
        for target in targets:
            in_degree[target] += 1

    start_key = normalize_url(start_url)
    return [
        page["url"]
        for page in pages
        if normalize_url(page["url"]) != start_key and in_degree[normalize_url(page["url"])] == 0
    ]


def jaccard_similarity(a: set[str] | list[str], b: set[str] | list[str]) -> float:
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def find_near_duplicates(pages: list[PageResult], config: AuditConfig) -> list[NearDuplicatePair]:
    """
    Every pair of pages with enough words whose top-term sets reach the
    similarity threshold, most similar first.
    """
    t = config.thresholds
    candidates = [
        p for p in pages if p["signals"] is not None and p["signals"]["word_count"] >= t.near_duplicate_min_words
    ]
    pairs: list[NearDuplicatePair] = []
    for i in range(len(candidates)):
        terms_i = set(candidates[i]["signals"]["top_terms"])
        for j in range(i + 1, len(candidates)):
            similarity = jaccard_similarity(terms_i, candidates[j]["signals"]["top_terms"])
            if similarity >= t.near_duplicate_similarity:
                pairs.append(
                    {
                        "urls": [candidates[i]["url"], candidates[j]["url"]],
                        "similarity": round(similarity, 3),
                    }
                )
    pairs.sort(key=lambda p: -p["similarity"])
    return pairs


def thin_page_ratio(pages: list[PageResult], config: AuditConfig) -> float:
    if not pages:
        return 0.0
    limit = config.thresholds.thin_content_words
    thin = sum(1 for p in pages if p["signals"] is not None and 0 < p["signals"]["word_count"] < limit)
    return thin / len(pages)


def thin_site_issue(pages: list[PageResult], config: AuditConfig) -> Issue | None:
    ratio = thin_page_ratio(pages, config)
    if ratio == 0:
        return None
    thin = round(ratio * len(pages))
    details = f"{thin} of {len(pages)} pages have fewer than {config.thresholds.thin_content_words} words."
    if ratio > config.thresholds.thin_site_ratio:
        return make_issue("warning", "Content", "Thin content across the site", config.weights.thin_site_warning, details)
    return make_issue("info", "Content", "Some pages have thin content", config.weights.thin_site_info, details)


def promote_recurring_issues(pages: list[PageResult], config: AuditConfig) -> list[Issue]:
    """
    Per-page issues seen on at least issue_recurrence_ratio of pages, with
    the message rewritten to carry the (count/total pages) ratio.
    """
    total = len(pages)
    if total == 0:
        return []
    first_seen: dict[tuple[str, str], Issue] = {}
    counts: dict[tuple[str, str], int] = defaultdict(int)
    for page in pages:
        keys_on_page: set[tuple[str, str]] = set()
        for issue in page["issues"]:
            key = (issue["category"], issue["message"])
            first_seen.setdefault(key, issue)
            keys_on_page.add(key)
        for key in keys_on_page:
            counts[key] += 1

    promoted: list[Issue] = []
    for key, issue in first_seen.items():
        count = counts[key]
        if count / total < config.thresholds.issue_recurrence_ratio:
            continue
        promoted.append({**issue, "message": f"{issue['message']} ({count}/{total} pages)"})
    promoted.sort(key=lambda i: -i["weight"])
    return promoted


def redirect_findings(traces: list[RedirectTrace]) -> list[RedirectTrace]:
    """Traces worth reporting: loops and chains of two or more hops."""
    return [t for t in traces if t["has_loop"] or t["hops"] >= 2]


def aggregate_issues(summary: TechnicalSummary, pages: list[PageResult], config: AuditConfig) -> list[Issue]:
    """Site-level deductions derived from the technical summary."""
    w = config.weights
    total = len(pages)
    issues: list[Issue] = []

    if summary["duplicate_title_groups"]:
        affected = sum(g["count"] for g in summary["duplicate_title_groups"])
        issues.append(
            make_issue(
                "warning",
                "On-Page",
                f"Duplicate titles ({affected}/{total} pages)",
                w.duplicate_titles,
                f"{len(summary['duplicate_title_groups'])} title(s) are shared by several pages.",
            )
        )
    if summary["duplicate_meta_groups"]:
        affected = sum(g["count"] for g in summary["duplicate_meta_groups"])
        issues.append(
            make_issue(
                "warning",
                "On-Page",
                f"Duplicate meta descriptions ({affected}/{total} pages)",
                w.duplicate_meta,
                f"{len(summary['duplicate_meta_groups'])} description(s) are shared by several pages.",
            )
        )
    if summary["duplicate_content_groups"]:
        affected = sum(g["count"] for g in summary["duplicate_content_groups"])
        issues.append(
            make_issue(
                "warning",
                "Content",
                f"Duplicate page content ({affected}/{total} pages)",
                w.duplicate_content,
                "Pages share an identical opening text block.",
            )
        )
    if summary["orphan_page_urls"]:
        issues.append(
            make_issue(
                "warning",
                "Technical",
                f"Orphan pages detected ({len(summary['orphan_page_urls'])}/{total} pages)",
                w.orphan_pages,
                "No other crawled page links to these URLs.",
            )
        )
    if summary["near_duplicate_pairs"]:
        issues.append(
            make_issue(
                "warning",
                "Content",
                "Near-duplicate content detected",
                w.near_duplicates,
                f"{len(summary['near_duplicate_pairs'])} page pair(s) share most of their key terms.",
            )
        )

    thin = thin_site_issue(pages, config)
    if thin is not None:
        issues.append(thin)

    chains = summary["redirect_chain_examples"]
    if any(t["has_loop"] for t in chains):
        issues.append(
            make_issue(
                "error",
                "Technical",
                "Redirect loop detected",
                w.redirect_loop,
                "At least one sampled URL redirects back to itself.",
            )
        )
    if any(not t["has_loop"] for t in chains):
        issues.append(
            make_issue(
                "warning",
                "Technical",
                "Redirect chains detected",
                w.redirect_chains_site,
                "Some sampled URLs pass through two or more redirects.",
            )
        )
    return issues


def aggregate_pages(
    pages: list[PageResult],
    start_url: str,
    crawl_source: CrawlSource,
    redirect_traces: list[RedirectTrace],
    config: AuditConfig,
) -> tuple[TechnicalSummary, list[Issue], list[Issue]]:
    """
    Build the technical summary for completed page results. Returns the
    summary, the promoted recurring per-page issues and the site-level
    deductions.
    """
    t = config.thresholds
    near_duplicates = find_near_duplicates(pages, config)
    summary: TechnicalSummary = {
        "crawl_source": crawl_source,
        "orphan_page_urls": find_orphan_pages(pages, start_url),
        "redirect_chain_examples": redirect_findings(redirect_traces),
        "duplicate_title_groups": duplicate_groups(pages, "title"),
        "duplicate_meta_groups": duplicate_groups(pages, "meta_description"),
        "duplicate_content_groups": duplicate_groups(pages, "content_fingerprint"),
        "near_duplicate_pairs": near_duplicates[: t.near_duplicate_examples],
        "thin_page_ratio": round(thin_page_ratio(pages, config), 3),
    }
    promoted = promote_recurring_issues(pages, config)
    deductions = aggregate_issues(summary, pages, config)
    logger.info(
        "Aggregated %d pages: %d orphans, %d duplicate title groups, %d near-duplicate pairs",
        len(pages),
        len(summary["orphan_page_urls"]),
        len(summary["duplicate_title_groups"]),
        len(near_duplicates),
    )
    return summary, promoted, deductions
