"""External performance adapter around Google PageSpeed Insights v5."""

import logging
from typing import Any

import requests

from http_client import HttpClient
from models import Issue, PageSpeedMetrics, PageSpeedReport, Strategy
from rules import AuditConfig, make_issue

logger = logging.getLogger(__name__)

PAGESPEED_ENDPOINT = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
STRATEGIES: tuple[Strategy, ...] = ("mobile", "desktop")


def _numeric_audit(audits: dict[str, Any], key: str) -> float | None:
    node = audits.get(key)
    if not isinstance(node, dict):
        return None
    raw = node.get("numericValue")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return float(raw)


def _audit_score(audits: dict[str, Any], key: str) -> float | None:
    node = audits.get(key)
    if not isinstance(node, dict):
        return None
    raw = node.get("score")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    return float(raw)


def parse_pagespeed_payload(payload: dict[str, Any], strategy: Strategy) -> PageSpeedMetrics:
    lighthouse = payload.get("lighthouseResult") or {}
    audits = lighthouse.get("audits") or {}
    categories = lighthouse.get("categories") or {}

    perf_raw = (categories.get("performance") or {}).get("score")
    performance_score = round(perf_raw * 100) if isinstance(perf_raw, (int, float)) and not isinstance(perf_raw, bool) else None

    is_mobile_friendly = None
    if strategy == "mobile":
        viewport = _audit_score(audits, "viewport")
        tap_targets = _audit_score(audits, "tap-targets")
        is_mobile_friendly = (viewport is None or viewport == 1) and (tap_targets is None or tap_targets >= 0.9)

    inp_ms = _numeric_audit(audits, "interaction-to-next-paint")
    if inp_ms is None:
        inp_ms = _numeric_audit(audits, "max-potential-fid")

    return {
        "strategy": strategy,
        "performance_score": performance_score,
        "lcp_ms": _numeric_audit(audits, "largest-contentful-paint"),
        "cls": _numeric_audit(audits, "cumulative-layout-shift"),
        "inp_ms": inp_ms,
        "fcp_ms": _numeric_audit(audits, "first-contentful-paint"),
        "speed_index_ms": _numeric_audit(audits, "speed-index"),
        "is_mobile_friendly": is_mobile_friendly,
    }


def get_page_speed_metrics(
    url: str,
    strategy: Strategy,
    *,
    client: HttpClient,
    api_key: str = "",
    timeout: float = 45.0,
) -> PageSpeedMetrics | None:
    """Run one PageSpeed Insights analysis. Any failure gives None."""
    params: dict[str, Any] = {
        "url": url,
        "strategy": strategy,
        "category": ["performance", "seo", "best-practices"],
    }
    if api_key:
        params["key"] = api_key
    try:
        response = client.get(PAGESPEED_ENDPOINT, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.info("PageSpeed %s request failed for %s: %s", strategy, url, exc)
        return None
    if response.status_code != 200:
        logger.info("PageSpeed %s returned HTTP %s for %s", strategy, response.status_code, url)
        return None
    try:
        payload = response.json()
    except ValueError:
        logger.info("PageSpeed %s returned invalid JSON for %s", strategy, url)
        return None
    if not isinstance(payload, dict):
        return None
    return parse_pagespeed_payload(payload, strategy)


def collect_page_speed(url: str, *, client: HttpClient, api_key: str = "", timeout: float = 45.0) -> PageSpeedReport:
    mobile = get_page_speed_metrics(url, "mobile", client=client, api_key=api_key, timeout=timeout)
    desktop = get_page_speed_metrics(url, "desktop", client=client, api_key=api_key, timeout=timeout)
    return {"mobile": mobile, "desktop": desktop}


def page_speed_issues(report: PageSpeedReport, config: AuditConfig) -> list[Issue]:
    """Issues contributed by the measured performance of each strategy."""
    w = config.weights
    t = config.thresholds
    issues: list[Issue] = []

    for strategy in STRATEGIES:
        metrics = report.get(strategy)
        if not metrics:
            continue
        label = strategy.capitalize()

        score = metrics["performance_score"]
        if score is not None and score < t.perf_poor_below:
            issues.append(
                make_issue(
                    "warning",
                    "Performance",
                    f"{label} performance score is poor",
                    w.perf_poor,
                    f"PageSpeed performance score is {score}/100.",
                )
            )
        elif score is not None and score < t.perf_good_from:
            issues.append(
                make_issue(
                    "info",
                    "Performance",
                    f"{label} performance score needs improvement",
                    w.perf_needs_work,
                    f"PageSpeed performance score is {score}/100.",
                )
            )

        lcp = metrics["lcp_ms"]
        if lcp is not None and lcp > t.lcp_slow_ms:
            issues.append(
                make_issue(
                    "warning",
                    "Performance",
                    f"{label} Largest Contentful Paint is slow",
                    w.lcp_slow,
                    f"LCP is {lcp / 1000:.1f}s. Aim for 2.5s or less.",
                )
            )

        cls = metrics["cls"]
        if cls is not None and cls > t.cls_high:
            issues.append(
                make_issue(
                    "warning",
                    "Performance",
                    f"{label} layout shift is high",
                    w.cls_high,
                    f"CLS is {cls:.2f}. Aim for 0.1 or less.",
                )
            )

        inp = metrics["inp_ms"]
        if inp is not None and inp > t.inp_slow_ms:
            issues.append(
                make_issue(
                    "warning",
                    "Performance",
                    f"{label} interaction latency is high",
                    w.inp_slow,
                    f"INP is {inp:.0f}ms. Aim for 200ms or less.",
                )
            )

        if metrics["is_mobile_friendly"] is False:
            issues.append(
                make_issue(
                    "warning",
                    "Mobile",
                    "Page is not mobile friendly",
                    w.not_mobile_friendly,
                    "PageSpeed viewport or tap-target audits failed on mobile.",
                )
            )

    return issues
