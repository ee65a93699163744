"""Redirect tracer: walk a URL's redirect chain one hop at a time."""

from concurrent.futures import ThreadPoolExecutor
import logging
from urllib.parse import urljoin

import requests

from http_client import HttpClient
from models import RedirectTrace
from urls import normalize_url

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 6


def trace_redirect_chain(url: str, max_hops: int = DEFAULT_MAX_HOPS, *, client: HttpClient) -> RedirectTrace:
    """
    Issue non-following GETs from `url`. Stops on a non-3xx response, a
    missing Location, a request error or after `max_hops` requests. A
    URL seen twice sets has_loop and stops immediately. The chain always
    holds hops + 1 URLs: at the hop limit the last Location target is
    appended without being requested.
    """
    chain: list[str] = []
    seen: set[str] = set()
    current = url
    hops = 0
    has_loop = False

    for _ in range(max(0, max_hops)):
        chain.append(current)
        key = normalize_url(current)
        if key in seen:
            has_loop = True
            break
        seen.add(key)

        try:
            response = client.get(current, allow_redirects=False, stream=True)
            response.close()
        except requests.RequestException as exc:
            logger.debug("Redirect hop failed for %s: %s", current, exc)
            break

        if not 300 <= response.status_code < 400:
            break
        location = (response.headers.get("Location") or "").strip()
        if not location:
            break
        try:
            current = urljoin(current, location)
        except ValueError:
            break
        hops += 1
    else:
        # hop limit reached: record where the last redirect pointed
        chain.append(current)
        has_loop = normalize_url(current) in seen

    return {"chain": chain, "hops": hops, "has_loop": has_loop}


def trace_redirect_sample(
    urls: list[str],
    *,
    client: HttpClient,
    max_hops: int = DEFAULT_MAX_HOPS,
    sample_size: int = 10,
    workers: int = 4,
) -> list[RedirectTrace]:
    """Trace the first `sample_size` URLs in parallel, preserving order."""
    sample = urls[: max(0, sample_size)]
    if not sample:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(sample)))) as pool:
        return list(pool.map(lambda u: trace_redirect_chain(u, max_hops, client=client), sample))
