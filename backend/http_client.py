"""Shared HTTP access: one requests.Session, fixed headers, explicit timeouts."""

import logging
from datetime import timedelta

import requests

from config import EngineSettings, load_settings
from models import FetchedPage

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Thin wrapper over requests.Session. Every call carries a timeout; the
    page fetch raises requests.RequestException on failure, the probe
    helpers never raise.
    """

    def __init__(self, settings: EngineSettings | None = None, session: requests.Session | None = None):
        self.settings = settings or load_settings()
        self.session = session or requests.Session()
        self.headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float | None = None,
        allow_redirects: bool = True,
        **kwargs,
    ) -> requests.Response:
        return self.session.request(
            method,
            url,
            headers=self.headers,
            timeout=timeout if timeout is not None else self.settings.probe_timeout,
            allow_redirects=allow_redirects,
            **kwargs,
        )

    def get(self, url: str, **kwargs) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def head(self, url: str, **kwargs) -> requests.Response:
        return self.request("HEAD", url, **kwargs)

    def fetch_page(self, url: str) -> FetchedPage:
        """
        GET `url` following redirects. response_ms is the time to first byte
        summed over every hop. Without a charset in Content-Type the body
        encoding is sniffed rather than taken as ISO-8859-1.
        """
        response = self.get(url, timeout=self.settings.request_timeout, allow_redirects=True)
        hops = list(response.history) + [response]
        elapsed = sum((r.elapsed for r in hops), timedelta())
        if "charset=" not in response.headers.get("Content-Type", "").lower():
            response.encoding = response.apparent_encoding or "utf-8"
        return {
            "url": url,
            "final_url": response.url or url,
            "status_code": response.status_code,
            "html": response.text,
            "response_ms": int(elapsed.total_seconds() * 1000),
            "redirected": len(response.history) > 0,
        }

    def fetch_text(self, url: str) -> str | None:
        """Body of a 2xx GET, or None on any failure."""
        try:
            response = self.get(url, allow_redirects=True)
        except requests.RequestException as exc:
            logger.debug("Probe GET failed for %s: %s", url, exc)
            return None
        if not response.ok:
            return None
        return response.text

    def link_status(self, url: str) -> int | None:
        """
        Final status of a link, HEAD first and GET when the server rejects
        HEAD. None when the request raises.
        """
        try:
            response = self.head(url, allow_redirects=True)
            if response.status_code in (405, 501):
                response = self.get(url, allow_redirects=True, stream=True)
                response.close()
            return response.status_code
        except requests.RequestException as exc:
            logger.debug("Link check failed for %s: %s", url, exc)
            return None

    def content_length(self, url: str) -> int | None:
        """Content-Length reported by a HEAD request, when available."""
        try:
            response = self.head(url, allow_redirects=True)
        except requests.RequestException as exc:
            logger.debug("HEAD failed for %s: %s", url, exc)
            return None
        raw = response.headers.get("Content-Length")
        try:
            return int(raw) if raw is not None else None
        except ValueError:
            return None
