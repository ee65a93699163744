"""URL helpers shared by the extractor, crawler and aggregator."""

from urllib.parse import urljoin, urlparse, urlunparse

_DEFAULT_PORTS = {"http": 80, "https": 443}
_SKIPPED_HREF_PREFIXES = ("#", "mailto:", "javascript:", "tel:")


def _netloc(scheme: str, hostname: str, port: int | None) -> str:
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return hostname
    return f"{hostname}:{port}"


def normalize_url(url: str) -> str:
    """
    Canonical form used as a dedup key: lowercase scheme and host, default
    port removed, empty path replaced by "/", fragment dropped.
    """
    try:
        parsed = urlparse(url.strip())
        port = parsed.port
    except ValueError:
        return url.strip()
    scheme = (parsed.scheme or "").lower()
    hostname = (parsed.hostname or "").lower()
    if not scheme or not hostname:
        return url.strip()
    path = parsed.path or "/"
    return urlunparse((scheme, _netloc(scheme, hostname, port), path, parsed.params, parsed.query, ""))


def origin_of(url: str) -> str:
    """Return scheme://host[:port] for `url`, or "" when it has no host."""
    try:
        parsed = urlparse(url.strip())
        port = parsed.port
    except ValueError:
        return ""
    scheme = (parsed.scheme or "").lower()
    hostname = (parsed.hostname or "").lower()
    if not scheme or not hostname:
        return ""
    return f"{scheme}://{_netloc(scheme, hostname, port)}"


def same_origin(url_a: str, url_b: str) -> bool:
    origin_a = origin_of(url_a)
    return bool(origin_a) and origin_a == origin_of(url_b)


def strip_fragment(url: str) -> str:
    p = urlparse(url)
    return urlunparse((p.scheme, p.netloc, p.path, p.params, p.query, ""))


def resolve_href(href: str | None, base_url: str) -> str | None:
    """
    Resolve an href against `base_url`. Fragment-only, mailto:, javascript:
    and tel: hrefs, and anything that does not resolve to http(s), give None.
    """
    value = (href or "").strip()
    if not value or value.lower().startswith(_SKIPPED_HREF_PREFIXES):
        return None
    try:
        resolved = urljoin(base_url, value)
    except ValueError:
        return None
    if urlparse(resolved).scheme.lower() not in ("http", "https"):
        return None
    return strip_fragment(resolved)
