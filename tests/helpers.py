"""Test doubles: a routed fake requests session and an HTML page builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
import threading
from urllib.parse import urljoin

import requests
from requests.structures import CaseInsensitiveDict
from requests.utils import get_encoding_from_headers

from config import EngineSettings
from http_client import HttpClient


DEFAULT_LINKS = ("/about", "/services", "/contact")


@dataclass
class Route:
    status: int = 200
    body: str = ""
    headers: dict = field(default_factory=dict)
    elapsed_ms: int = 40
    head_status: int | None = None


def make_response(url: str, route: Route, method: str = "GET") -> requests.Response:
    response = requests.Response()
    status = route.head_status if method == "HEAD" and route.head_status is not None else route.status
    response.status_code = status
    response.reason = "OK" if status < 400 else "Error"
    response._content = b"" if method == "HEAD" else route.body.encode("utf-8")
    response._content_consumed = True
    response.headers = CaseInsensitiveDict(route.headers)
    response.url = url
    response.encoding = get_encoding_from_headers(response.headers)
    response.elapsed = timedelta(milliseconds=route.elapsed_ms)
    response.history = []
    return response


class FakeSession:
    """
    Answers requests from a url -> Route (or Exception) table. Unknown URLs
    raise ConnectionError, like an unresolvable host.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str]] = []
        self.last_headers: dict | None = None
        self._lock = threading.Lock()

    def request(self, method, url, headers=None, timeout=None, allow_redirects=True, **kwargs):
        with self._lock:
            self.calls.append((method, url))
            self.last_headers = headers
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"Failed to resolve {url}")
        if isinstance(route, Exception):
            raise route
        response = make_response(url, route, method)
        location = route.headers.get("Location")
        if allow_redirects and 300 <= route.status < 400 and location:
            hops = kwargs.pop("_hops", 0)
            if hops >= 10:
                raise requests.TooManyRedirects(url)
            final = self.request(
                method, urljoin(url, location), headers=headers, timeout=timeout, allow_redirects=True, _hops=hops + 1, **kwargs
            )
            final.history = [response] + final.history
            return final
        return response

    def calls_to(self, url: str) -> int:
        return sum(1 for _, called in self.calls if called == url)


def make_client(routes: dict | None = None, **overrides) -> HttpClient:
    settings = EngineSettings(
        page_workers=overrides.pop("page_workers", 2),
        probe_workers=overrides.pop("probe_workers", 2),
        pagespeed_enabled=overrides.pop("pagespeed_enabled", False),
        **overrides,
    )
    return HttpClient(settings, session=FakeSession(routes))


def filler(topic: str, count: int = 300) -> str:
    """`count` distinct words, all derived from `topic`."""
    return " ".join(f"{topic}word{i}" for i in range(count))


def build_html(
    *,
    title: str | None = "A descriptive page title for testing purposes",
    description: str | None = (
        "A meta description that is comfortably longer than one hundred and twenty "
        "characters so that it never triggers the short description rule."
    ),
    h1: int = 1,
    h2: bool = True,
    body: str | None = None,
    links: tuple[str, ...] = DEFAULT_LINKS,
    images: str = "",
    viewport: bool = True,
    charset: bool = True,
    lang: bool = True,
    canonical: bool = True,
    open_graph: bool = True,
    json_ld: bool = True,
    favicon: bool = True,
    head_extra: str = "",
) -> str:
    head = []
    if charset:
        head.append('<meta charset="utf-8">')
    if title is not None:
        head.append(f"<title>{title}</title>")
    if description is not None:
        head.append(f'<meta name="description" content="{description}">')
    if viewport:
        head.append('<meta name="viewport" content="width=device-width, initial-scale=1">')
    if canonical:
        head.append('<link rel="canonical" href="/">')
    if open_graph:
        head.append('<meta property="og:title" content="Page">')
    if json_ld:
        head.append('<script type="application/ld+json">{"@type": "WebPage"}</script>')
    if favicon:
        head.append('<link rel="icon" href="/favicon.ico">')
    head.append(head_extra)

    parts = [f"<h1>Main heading {i}</h1>" for i in range(h1)]
    if h2:
        parts.append("<h2>Section heading</h2>")
    parts.append(f"<p>{body if body is not None else filler('page')}</p>")
    parts.extend(f'<a href="{href}">Link to {href}</a>' for href in links)
    parts.append(images)

    lang_attr = ' lang="en"' if lang else ""
    return f"<html{lang_attr}><head>{''.join(head)}</head><body>{''.join(parts)}</body></html>"


def site_file_routes(origin: str) -> dict:
    return {
        f"{origin}/robots.txt": Route(body="User-agent: *\nAllow: /"),
        f"{origin}/sitemap.xml": Route(body=f"<urlset><url><loc>{origin}/</loc></url></urlset>"),
    }
