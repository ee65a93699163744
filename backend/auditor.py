"""Page auditor: fetch one URL, probe its site, run the rule battery.

A failed page fetch is terminal for that page only: the result has a
score of 0 and a single Crawl issue. Probe failures (robots.txt,
sitemap, image HEADs, link checks) only ever remove a signal.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
import logging

import requests

from http_client import HttpClient
from models import PageResult, SiteFiles
from rules import AuditConfig, PageFacts, crawl_failure_issue, run_rules
from scoring import page_score
from scraper import parse_document
from urls import origin_of

logger = logging.getLogger(__name__)

ROBOTS_PATH = "/robots.txt"
SITEMAP_PROBE_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml", "/sitemap/index.xml")


def probe_site_files(url: str, *, client: HttpClient) -> SiteFiles:
    """Check robots.txt and the well-known sitemap locations for `url`'s origin."""
    origin = origin_of(url)

    robots_txt = client.fetch_text(f"{origin}{ROBOTS_PATH}") is not None

    sitemap_xml = False
    for path in SITEMAP_PROBE_PATHS:
        text = client.fetch_text(f"{origin}{path}")
        if text is not None and ("<loc>" in text or "sitemap" in text.lower()):
            sitemap_xml = True
            break

    return {"robots_txt": robots_txt, "sitemap_xml": sitemap_xml}


def _probe_all(probe, sample: list[str], pool: Executor | None, workers: int) -> list:
    """Run `probe` over `sample` on the shared pool, or on a short-lived one of `workers` threads."""
    if pool is not None:
        return list(pool.map(probe, sample))
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(sample)))) as local_pool:
        return list(local_pool.map(probe, sample))


def count_oversized_images(
    sources: list[str],
    *,
    client: HttpClient,
    config: AuditConfig,
    workers: int = 4,
    pool: Executor | None = None,
) -> int:
    sample = sources[: config.thresholds.image_sample_size]
    if not sample:
        return 0
    sizes = _probe_all(client.content_length, sample, pool, workers)
    return sum(1 for size in sizes if size is not None and size > config.thresholds.oversized_image_bytes)


def count_broken_links(
    links: list[str],
    *,
    client: HttpClient,
    config: AuditConfig,
    workers: int = 4,
    pool: Executor | None = None,
) -> tuple[int, int]:
    """Return (broken, sampled) for the first link_sample_size links."""
    sample = links[: config.thresholds.link_sample_size]
    if not sample:
        return 0, 0
    statuses = _probe_all(client.link_status, sample, pool, workers)
    broken = sum(1 for status in statuses if status is None or status >= 400)
    return broken, len(sample)


def crawl_failure_result(url: str, reason: str, config: AuditConfig) -> PageResult:
    return {
        "url": url,
        "score": 0,
        "issues": [crawl_failure_issue(reason, config)],
        "signals": None,
    }


def audit_page(
    url: str,
    focus_keyword: str | None = None,
    *,
    client: HttpClient,
    config: AuditConfig | None = None,
    site_files: SiteFiles | None = None,
    probe_pool: Executor | None = None,
) -> PageResult:
    """
    Audit a single URL. `site_files` lets a multi-page run share one
    robots/sitemap probe across pages of the same origin. `probe_pool`
    runs the image and link probes; a multi-page run passes one pool for
    all pages so probe concurrency stays at probe_workers.
    """
    config = config or AuditConfig()

    try:
        fetched = client.fetch_page(url)
    except requests.RequestException as exc:
        logger.warning("Failed to fetch %s: %s", url, exc)
        return crawl_failure_result(url, str(exc), config)

    document = parse_document(fetched["html"], fetched["final_url"])
    workers = client.settings.probe_workers

    oversized = count_oversized_images(
        document["image_sources"], client=client, config=config, workers=workers, pool=probe_pool
    )
    signals = document["signals"]
    signals = {**signals, "image_stats": {**signals["image_stats"], "oversized": oversized}}

    broken, sampled = count_broken_links(
        document["link_candidates"], client=client, config=config, workers=workers, pool=probe_pool
    )

    if site_files is None:
        site_files = probe_site_files(url, client=client)

    keyword = (focus_keyword or "").strip().lower()
    body_mentions = document["visible_text"].lower().count(keyword) if keyword else 0
    heading_mentions = sum(1 for h in document["heading_texts"] if keyword and keyword in h.lower())

    facts = PageFacts(
        url=url,
        signals=signals,
        response_ms=fetched["response_ms"],
        redirected=fetched["redirected"],
        robots_txt_found=site_files["robots_txt"],
        sitemap_found=site_files["sitemap_xml"],
        broken_links=broken,
        sampled_links=sampled,
        focus_keyword=(focus_keyword or "").strip() or None,
        keyword_body_mentions=body_mentions,
        keyword_heading_mentions=heading_mentions,
    )
    issues = run_rules(facts, config)
    result: PageResult = {
        "url": url,
        "score": page_score(issues),
        "issues": issues,
        "signals": signals,
    }
    logger.debug("Audited %s: score=%d issues=%d", url, result["score"], len(issues))
    return result
