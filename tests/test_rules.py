"""
Tests for the rule battery: each rule's trigger and weight, rule order
and weight overrides through AuditConfig.
"""
from __future__ import annotations

from dataclasses import replace

import pytest

from helpers import build_html
from rules import (
    RULES,
    AuditConfig,
    AuditWeights,
    PageFacts,
    check_broken_links,
    check_focus_keyword_body,
    check_focus_keyword_heading,
    check_heading_hierarchy,
    check_image_alt,
    check_internal_links,
    check_response_time,
    check_thin_content,
    check_title_length,
    crawl_failure_issue,
    make_issue,
    run_rules,
)
from scraper import extract_signals

URL = "https://example.com/"


def facts_for(html: str, url: str = URL, **kwargs) -> PageFacts:
    return PageFacts(url=url, signals=extract_signals(html, url), **kwargs)


def messages(issues) -> list[str]:
    return [i["message"] for i in issues]


# ===================================================================
# Helpers
# ===================================================================


class TestMakeIssue:
    def test_weight_is_clamped(self):
        assert make_issue("info", "X", "m", 250)["weight"] == 100
        assert make_issue("info", "X", "m", -3)["weight"] == 0

    def test_crawl_failure_issue(self, config):
        issue = crawl_failure_issue("Name or service not known", config)
        assert issue == {
            "severity": "error",
            "category": "Crawl",
            "message": "Failed to fetch URL",
            "details": "Name or service not known",
            "weight": 100,
        }


# ===================================================================
# Whole battery
# ===================================================================


class TestRunRules:
    def test_clean_page_has_no_issues(self, config):
        assert run_rules(facts_for(build_html()), config) == []

    def test_short_title_and_missing_description(self, config):
        issues = run_rules(facts_for(build_html(title="x", description=None)), config)
        by_message = {i["message"]: i for i in issues}
        assert by_message["Title too short"]["weight"] == 6
        assert by_message["Title too short"]["severity"] == "warning"
        assert by_message["Missing meta description"]["weight"] == 12
        assert sum(i["weight"] for i in issues) >= 18

    def test_issues_follow_rule_order(self, config):
        html = build_html(title=None, viewport=False, h1=0)
        issues = run_rules(facts_for(html, url="http://example.com/"), config)
        assert messages(issues)[:4] == [
            "Site not using HTTPS",
            "Missing page title",
            "Missing viewport meta tag",
            "Missing H1 heading",
        ]

    def test_weights_come_from_config(self):
        config = AuditConfig(weights=replace(AuditWeights(), title_missing=40))
        issues = run_rules(facts_for(build_html(title=None)), config)
        assert issues == [make_issue("error", "On-Page", "Missing page title", 40, issues[0]["details"])]

    def test_custom_rule_tuple(self, config):
        facts = facts_for(build_html(title="x"))
        assert messages(run_rules(facts, config, rules=(check_title_length,))) == ["Title too short"]

    def test_every_rule_returns_issue_or_none(self, config):
        facts = facts_for("")
        for rule in RULES:
            result = rule(facts, config)
            assert result is None or set(result) == {"severity", "category", "message", "details", "weight"}

    def test_site_file_rules(self, config):
        facts = facts_for(build_html(), robots_txt_found=False, sitemap_found=False)
        assert messages(run_rules(facts, config)) == ["No robots.txt found", "No sitemap.xml found"]

    def test_noindex_and_meta_keywords(self, config):
        html = build_html(head_extra='<meta name="robots" content="NOINDEX"><meta name="keywords" content="a">')
        issues = {i["message"]: i["weight"] for i in run_rules(facts_for(html), config)}
        assert issues == {"Meta keywords tag present": 1, "Page has noindex": 25}

    def test_redirected_page(self, config):
        issues = run_rules(facts_for(build_html(), redirected=True), config)
        assert messages(issues) == ["URL redirects before final page"]


# ===================================================================
# Individual rules
# ===================================================================


class TestTitleLength:
    @pytest.mark.parametrize(
        "length, expected",
        [(29, "Title too short"), (30, None), (60, None), (61, "Title too long")],
    )
    def test_boundaries(self, config, length, expected):
        issue = check_title_length(facts_for(build_html(title="t" * length)), config)
        assert (issue["message"] if issue else None) == expected


class TestHeadings:
    def test_multiple_h1(self, config):
        issues = run_rules(facts_for(build_html(h1=3)), config)
        assert [(i["message"], i["weight"]) for i in issues] == [("Multiple H1 headings", 5)]

    def test_h3_without_h2(self, config):
        html = build_html(h2=False).replace("</p>", "</p><h3>Sub</h3>")
        issue = check_heading_hierarchy(facts_for(html), config)
        assert issue is not None and issue["weight"] == 4

    def test_h3_with_h2_is_fine(self, config):
        html = build_html().replace("</p>", "</p><h3>Sub</h3>")
        assert check_heading_hierarchy(facts_for(html), config) is None


class TestContent:
    def test_thin_content(self, config):
        issue = check_thin_content(facts_for("<p>only a few words here</p>"), config)
        assert issue["message"] == "Thin content detected"
        assert issue["weight"] == 8

    def test_empty_page_is_not_thin(self, config):
        assert check_thin_content(facts_for(""), config) is None

    def test_focus_keyword_missing(self, config):
        facts = facts_for(build_html(), focus_keyword="vegan pizza", keyword_body_mentions=0)
        assert check_focus_keyword_body(facts, config)["weight"] == 8
        assert check_focus_keyword_heading(facts, config)["weight"] == 3

    def test_focus_keyword_weak_on_long_page(self, config):
        long_page = build_html(body=" ".join(["word"] * 400))
        facts = facts_for(long_page, focus_keyword="pizza", keyword_body_mentions=1, keyword_heading_mentions=1)
        issue = check_focus_keyword_body(facts, config)
        assert issue["severity"] == "info"
        assert issue["weight"] == 4
        assert check_focus_keyword_heading(facts, config) is None

    def test_no_focus_keyword_no_keyword_issues(self, config):
        facts = facts_for(build_html())
        assert check_focus_keyword_body(facts, config) is None
        assert check_focus_keyword_heading(facts, config) is None


class TestImagesAndLinks:
    def test_alt_weight_scales_and_caps(self, config):
        one = facts_for('<img src="/a.png">')
        many = facts_for('<img src="/a.png">' * 6)
        assert check_image_alt(one, config)["weight"] == 2
        assert check_image_alt(many, config)["weight"] == 8

    def test_few_internal_links_only_on_substantial_pages(self, config):
        small = facts_for("<p>tiny</p>")
        large = facts_for(build_html(links=("/a",)))
        assert check_internal_links(small, config) is None
        assert check_internal_links(large, config)["message"] == "Few internal links"

    def test_broken_links_weight(self, config):
        facts = facts_for(build_html(), broken_links=2, sampled_links=12)
        issue = check_broken_links(facts, config)
        assert issue["weight"] == 4
        assert issue["details"] == "2 of 12 sampled links are broken or unreachable."
        assert check_broken_links(facts_for(build_html(), broken_links=9, sampled_links=12), config)["weight"] == 8


class TestResponseTime:
    def test_threshold_is_exclusive(self, config):
        assert check_response_time(facts_for(build_html(), response_ms=1800), config) is None
        assert check_response_time(facts_for(build_html(), response_ms=1801), config)["weight"] == 6
