"""URL frontier: decide which pages of a site get audited.

Sitemaps are tried first; when none yields a page URL the site is walked
breadth-first from the start URL. Both walks are bounded: sitemap
fetches by a fetch cap and a visited set, BFS by max_pages and a
visited set keyed by normalized URL.
"""

from collections import deque
import logging
from typing import Collection, Literal

from bs4 import BeautifulSoup
import requests

from http_client import HttpClient
from models import FetchedPage
from rules import AuditConfig
from scraper import extract_links
from urls import normalize_url, origin_of

logger = logging.getLogger(__name__)

SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/sitemap/index.xml",
)
NON_HTML_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico",
    ".zip", ".gz", ".mp4", ".mp3", ".css", ".js", ".xml", ".json",
)


def parse_sitemap_locs(xml: str) -> list[str]:
    """Return the trimmed text of every <loc> element."""
    try:
        soup = BeautifulSoup(xml or "", "html.parser")
    except Exception:
        return []
    locs: list[str] = []
    for loc in soup.find_all("loc"):
        value = loc.get_text().strip()
        if value:
            locs.append(value)
    return locs


def collect_sitemap_urls(
    sitemap_url: str,
    origins: Collection[str],
    *,
    client: HttpClient,
    max_fetches: int,
    max_urls: int,
) -> tuple[list[str], int]:
    """
    Walk one sitemap and any child sitemaps it lists whose origin is in
    `origins`, making at most
    `max_fetches` requests; reaching the cap truncates the walk.
    Returns the page URLs and the number of fetches made.
    """
    queue: deque[str] = deque([sitemap_url])
    seen_sitemaps: set[str] = set()
    pages: list[str] = []
    seen_pages: set[str] = set()
    fetches = 0

    while queue and len(pages) < max_urls:
        current = queue.popleft()
        key = normalize_url(current)
        if key in seen_sitemaps:
            continue
        if fetches >= max_fetches:
            logger.info("Sitemap fetch cap reached at %s; truncating", current)
            break
        seen_sitemaps.add(key)
        fetches += 1

        xml = client.fetch_text(current)
        if xml is None:
            continue

        for loc in parse_sitemap_locs(xml):
            if not loc.lower().startswith("http") or origin_of(loc) not in origins:
                continue
            if loc.lower().endswith(".xml"):
                if normalize_url(loc) not in seen_sitemaps:
                    queue.append(loc)
                continue
            loc_key = normalize_url(loc)
            if loc_key in seen_pages:
                continue
            seen_pages.add(loc_key)
            pages.append(loc)
            if len(pages) >= max_urls:
                break

    return pages, fetches


def get_urls_from_sitemap(
    start_url: str,
    max_pages: int,
    *,
    client: HttpClient,
    config: AuditConfig,
    landing_url: str | None = None,
) -> list[str]:
    """
    Try each well-known sitemap path until one yields page URLs. The fetch
    cap is shared by all paths and their child sitemaps.

    When the start URL redirects to another host, pass the landing URL:
    sitemaps are looked up on the landing origin and entries from either
    origin are accepted.
    """
    origins = {origin_of(start_url)}
    if landing_url:
        origins.add(origin_of(landing_url))
    origin = origin_of(landing_url or start_url)
    remaining = config.thresholds.sitemap_fetch_cap
    for path in SITEMAP_PATHS:
        if remaining <= 0:
            break
        urls, used = collect_sitemap_urls(
            f"{origin}{path}",
            origins,
            client=client,
            max_fetches=remaining,
            max_urls=max_pages,
        )
        remaining -= used
        if urls:
            logger.info("Sitemap %s%s listed %d URLs", origin, path, len(urls))
            return urls
    return []


def _looks_like_page(url: str) -> bool:
    path = url.split("?", 1)[0].lower()
    return not path.endswith(NON_HTML_EXTENSIONS)


def discover_urls_bfs(
    start_url: str,
    max_pages: int,
    *,
    client: HttpClient,
    start_page: FetchedPage | None = None,
) -> list[str]:
    """
    Breadth-first walk of same-origin links from `start_url`. Failed
    fetches are skipped; the walk stops at `max_pages` discovered URLs.

    Links on the origin the start URL lands on after redirects count as
    same-origin too. `start_page` is an already fetched start URL and is
    not requested again.
    """
    discovered = [start_url]
    visited = {normalize_url(start_url)}
    origins = {origin_of(start_url)}
    queue: deque[str] = deque([start_url])

    while queue and len(discovered) < max_pages:
        current = queue.popleft()
        if start_page is not None and current == start_url:
            page = start_page
        else:
            try:
                page = client.fetch_page(current)
            except requests.RequestException as exc:
                logger.debug("BFS fetch failed for %s: %s", current, exc)
                continue
        if current == start_url:
            origins.add(origin_of(page["final_url"]))
            visited.add(normalize_url(page["final_url"]))

        for link in extract_links(page["html"], page["final_url"]):
            if origin_of(link) not in origins or not _looks_like_page(link):
                continue
            key = normalize_url(link)
            if key in visited:
                continue
            visited.add(key)
            discovered.append(link)
            queue.append(link)
            if len(discovered) >= max_pages:
                break

    return discovered


def _with_start_url(start_url: str, urls: list[str], max_pages: int, aliases: Collection[str] = ()) -> list[str]:
    out = [start_url]
    seen = {normalize_url(start_url)} | {normalize_url(alias) for alias in aliases}
    for url in urls:
        key = normalize_url(url)
        if key in seen:
            continue
        seen.add(key)
        out.append(url)
    return out[:max_pages]


def crawl_site_urls(
    start_url: str,
    max_pages: int,
    *,
    client: HttpClient,
    config: AuditConfig | None = None,
) -> tuple[list[str], Literal["sitemap", "bfs"]]:
    """
    Return up to `max_pages` URLs of the site, start URL first, and their
    source. The start URL is fetched once up front so a redirect to
    another host (example.com to www.example.com) moves the crawl there.
    """
    config = config or AuditConfig()
    max_pages = max(1, max_pages)

    try:
        start_page: FetchedPage | None = client.fetch_page(start_url)
    except requests.RequestException as exc:
        logger.debug("Start URL %s unreachable: %s", start_url, exc)
        start_page = None
    landing = start_page["final_url"] if start_page else start_url
    if normalize_url(landing) != normalize_url(start_url):
        logger.info("%s lands on %s", start_url, landing)

    sitemap_urls = get_urls_from_sitemap(start_url, max_pages, client=client, config=config, landing_url=landing)
    if sitemap_urls:
        return _with_start_url(start_url, sitemap_urls, max_pages, (landing,)), "sitemap"

    logger.info("No sitemap URLs for %s; falling back to link discovery", start_url)
    if start_page is None:
        return [start_url], "bfs"
    discovered = discover_urls_bfs(start_url, max_pages, client=client, start_page=start_page)
    return _with_start_url(start_url, discovered, max_pages, (landing,)), "bfs"
