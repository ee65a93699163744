"""Scorer / grader: per-page score, final score and letter grade."""

import math

from models import Issue, PageResult

GRADE_THRESHOLDS = ((90, "A"), (70, "B"), (50, "C"), (30, "D"))


def clamp_score(value: float) -> int:
    return int(max(0, min(100, value)))


def grade_for_score(score: float) -> str:
    for floor, grade in GRADE_THRESHOLDS:
        if score >= floor:
            return grade
    return "F"


def page_score(issues: list[Issue]) -> int:
    """100 minus the summed weights, clamped to [0, 100]."""
    return clamp_score(100 - sum(issue["weight"] for issue in issues))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def final_score(pages: list[PageResult], aggregate_issues: list[Issue] | None = None) -> int:
    """
    One page: that page's score. Several pages: the rounded mean, reduced
    by each aggregate deduction without ever dropping below 0.
    """
    if not pages:
        return 0
    if len(pages) == 1:
        return clamp_score(pages[0]["score"])

    score = clamp_score(_round_half_up(sum(p["score"] for p in pages) / len(pages)))
    for issue in aggregate_issues or []:
        score = max(0, score - issue["weight"])
    return score
