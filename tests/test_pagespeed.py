"""Tests for the PageSpeed Insights adapter. Payloads are trimmed-down v5 responses."""
from __future__ import annotations

import json

import pytest

from helpers import Route, make_client
from pagespeed import (
    PAGESPEED_ENDPOINT,
    collect_page_speed,
    get_page_speed_metrics,
    page_speed_issues,
    parse_pagespeed_payload,
)


@pytest.fixture
def slow_payload():
    return {
        "lighthouseResult": {
            "categories": {"performance": {"score": 0.42}},
            "audits": {
                "largest-contentful-paint": {"numericValue": 5200.4},
                "cumulative-layout-shift": {"numericValue": 0.31},
                "max-potential-fid": {"numericValue": 650},
                "first-contentful-paint": {"numericValue": 1800},
                "speed-index": {"numericValue": 3000},
                "viewport": {"score": 1},
                "tap-targets": {"score": 0.5},
            },
        }
    }


class TestParsePayload:
    def test_mobile_metrics(self, slow_payload):
        metrics = parse_pagespeed_payload(slow_payload, "mobile")
        assert metrics == {
            "strategy": "mobile",
            "performance_score": 42,
            "lcp_ms": 5200.4,
            "cls": 0.31,
            "inp_ms": 650.0,
            "fcp_ms": 1800.0,
            "speed_index_ms": 3000.0,
            "is_mobile_friendly": False,
        }

    def test_desktop_has_no_mobile_verdict(self, slow_payload):
        assert parse_pagespeed_payload(slow_payload, "desktop")["is_mobile_friendly"] is None

    def test_inp_preferred_over_fallback(self, slow_payload):
        slow_payload["lighthouseResult"]["audits"]["interaction-to-next-paint"] = {"numericValue": 180}
        assert parse_pagespeed_payload(slow_payload, "mobile")["inp_ms"] == 180.0

    def test_empty_payload(self):
        metrics = parse_pagespeed_payload({}, "mobile")
        assert metrics["performance_score"] is None
        assert metrics["lcp_ms"] is None
        assert metrics["is_mobile_friendly"] is True


class TestFetch:
    def test_successful_call(self, slow_payload):
        client = make_client({PAGESPEED_ENDPOINT: Route(body=json.dumps(slow_payload))})
        metrics = get_page_speed_metrics("https://example.com/", "desktop", client=client, api_key="k")
        assert metrics["performance_score"] == 42

    def test_http_error_gives_none(self):
        client = make_client({PAGESPEED_ENDPOINT: Route(status=429, body="{}")})
        assert get_page_speed_metrics("https://example.com/", "mobile", client=client) is None

    def test_invalid_json_gives_none(self):
        client = make_client({PAGESPEED_ENDPOINT: Route(body="<html>oops</html>")})
        assert get_page_speed_metrics("https://example.com/", "mobile", client=client) is None

    def test_unreachable_gives_none_for_both_strategies(self):
        assert collect_page_speed("https://example.com/", client=make_client({})) == {"mobile": None, "desktop": None}


class TestIssues:
    def test_slow_mobile_report(self, slow_payload, config):
        report = {"mobile": parse_pagespeed_payload(slow_payload, "mobile"), "desktop": None}
        issues = page_speed_issues(report, config)
        assert [(i["message"], i["weight"]) for i in issues] == [
            ("Mobile performance score is poor", 6),
            ("Mobile Largest Contentful Paint is slow", 4),
            ("Mobile layout shift is high", 3),
            ("Mobile interaction latency is high", 3),
            ("Page is not mobile friendly", 5),
        ]

    def test_middling_desktop_score(self, config):
        metrics = parse_pagespeed_payload({"lighthouseResult": {"categories": {"performance": {"score": 0.75}}}}, "desktop")
        issues = page_speed_issues({"mobile": None, "desktop": metrics}, config)
        assert [(i["severity"], i["message"], i["weight"]) for i in issues] == [
            ("info", "Desktop performance score needs improvement", 3)
        ]

    def test_fast_site_has_no_issues(self, config):
        metrics = parse_pagespeed_payload({"lighthouseResult": {"categories": {"performance": {"score": 0.97}}}}, "mobile")
        assert page_speed_issues({"mobile": metrics, "desktop": None}, config) == []
