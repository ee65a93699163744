"""Audit engine: one bounded, synchronous site audit.

Pipeline: frontier -> page audits (thread pool) -> redirect sample ->
cross-page aggregation -> PageSpeed -> score and grade.
"""

from concurrent.futures import ThreadPoolExecutor
import logging
from typing import Any, Mapping

from aggregator import aggregate_pages
from auditor import audit_page, probe_site_files
from config import EngineSettings
from crawler import crawl_site_urls
from http_client import HttpClient
from models import AuditReport, CrawlSource, Issue, PageResult, PageSpeedReport, TechnicalSummary
from pagespeed import collect_page_speed, page_speed_issues
from redirects import trace_redirect_sample
from rules import AuditConfig
from schemas import AuditRequest
from scoring import final_score, grade_for_score
from urls import normalize_url

logger = logging.getLogger(__name__)


def _unique_urls(urls: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for url in urls:
        key = normalize_url(url)
        if key in seen:
            continue
        seen.add(key)
        out.append(url)
    return out


def audit_pages(
    urls: list[str],
    focus_keyword: str | None,
    *,
    client: HttpClient,
    config: AuditConfig,
    workers: int,
    probe_workers: int = 4,
) -> list[PageResult]:
    """
    Audit every URL with bounded parallelism; results keep input order.
    All pages share one probe pool, so at most workers + probe_workers
    requests are in flight.
    """
    site_files = probe_site_files(urls[0], client=client)

    with ThreadPoolExecutor(max_workers=max(1, probe_workers)) as probe_pool:

        def _audit(url: str) -> PageResult:
            return audit_page(
                url, focus_keyword, client=client, config=config, site_files=site_files, probe_pool=probe_pool
            )

        with ThreadPoolExecutor(max_workers=max(1, min(workers, len(urls)))) as pool:
            return list(pool.map(_audit, urls))


def run_site_audit(
    request: AuditRequest | Mapping[str, Any],
    *,
    client: HttpClient | None = None,
    config: AuditConfig | None = None,
    settings: EngineSettings | None = None,
) -> AuditReport:
    """
    Run one audit. A mapping is validated into an AuditRequest first, so a
    malformed URL or an out-of-range max_pages raises
    pydantic.ValidationError before any request is sent.
    """
    if not isinstance(request, AuditRequest):
        request = AuditRequest.model_validate(request)
    config = config or AuditConfig()
    client = client or HttpClient(settings)
    settings = client.settings

    start_url = request.url
    crawl_source: CrawlSource
    if request.crawl_mode == "fullsite":
        urls, crawl_source = crawl_site_urls(start_url, request.max_pages, client=client, config=config)
    else:
        urls, crawl_source = [start_url], "single"
    urls = _unique_urls(urls)
    logger.info("Auditing %d page(s) for %s (source=%s)", len(urls), start_url, crawl_source)

    pages = audit_pages(
        urls,
        request.focus_keyword,
        client=client,
        config=config,
        workers=settings.page_workers,
        probe_workers=settings.probe_workers,
    )

    technical_summary: TechnicalSummary | None = None
    issues: list[Issue]
    deductions: list[Issue] = []
    if len(pages) > 1:
        traces = trace_redirect_sample(
            urls,
            client=client,
            max_hops=config.thresholds.redirect_max_hops,
            sample_size=settings.redirect_sample_size,
            workers=settings.probe_workers,
        )
        technical_summary, promoted, deductions = aggregate_pages(pages, start_url, crawl_source, traces, config)
        issues = promoted + deductions
    else:
        issues = list(pages[0]["issues"])

    page_speed: PageSpeedReport = {"mobile": None, "desktop": None}
    if settings.pagespeed_enabled:
        page_speed = collect_page_speed(
            start_url,
            client=client,
            api_key=settings.pagespeed_api_key,
            timeout=settings.pagespeed_timeout,
        )
        speed_issues = page_speed_issues(page_speed, config)
        issues += speed_issues
        if len(pages) > 1:
            deductions += speed_issues

    score = final_score(pages, deductions)
    report: AuditReport = {
        "url": start_url,
        "final_score": score,
        "grade": grade_for_score(score),
        "issues": issues,
        "pages_audited": len(pages),
        "crawl_source": crawl_source,
        "technical_summary": technical_summary,
        "page_speed": page_speed,
        "pages": [{"url": p["url"], "score": p["score"], "issues": p["issues"]} for p in pages],
    }
    logger.info("Audit of %s finished: score=%d grade=%s", start_url, score, report["grade"])
    return report
