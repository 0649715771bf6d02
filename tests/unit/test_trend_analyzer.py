"""Tests for analyzers.trend_analyzer — weekly/monthly buckets and slide metrics."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from analyzers.trend_analyzer import TrendAnalyzer

# A Wednesday; the current week starts Monday 2024-05-13.
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def findings(make_finding):
    return [
        make_finding("a", "web-01", severity="Critical", status="Open",
                     timestamp="2024-05-13T00:00:00Z", days_overdue=3),
        make_finding("b", "web-01", severity="High", status="Fixed",
                     timestamp="2024-05-14T09:30:00Z"),
        make_finding("c", "db-01", severity="Low", status="Triaged",
                     timestamp=1714521600000),  # 2024-05-01
        make_finding("d", "db-01", severity="Medium", status="Open",
                     timestamp="2024-02-20T10:00:00Z"),
        make_finding("e", "app-01", severity="Info", status="Closed",
                     timestamp="garbage"),
    ]


def test_weekly_trend_shape(findings) -> None:
    weeks = TrendAnalyzer(findings, now=NOW).weekly_trend()
    assert len(weeks) == 8
    assert weeks[-1].label == "May 13"
    assert weeks[0].label == "Mar 25"


def test_weekly_trend_current_week(findings) -> None:
    current = TrendAnalyzer(findings, now=NOW).weekly_trend()[-1]
    assert current.total == 2
    assert current.closed == 1
    assert current.open == 1
    assert current.critical == 1
    assert current.high == 1


def test_weekly_trend_skips_unparseable_and_old(findings) -> None:
    weeks = TrendAnalyzer(findings, now=NOW).weekly_trend()
    # "d" is older than eight weeks; "e" has no usable date
    assert sum(w.total for w in weeks) == 3


def test_monthly_trend(findings) -> None:
    months = TrendAnalyzer(findings, now=NOW).monthly_trend()
    assert [m.label for m in months] == ["Jan", "Feb", "Mar", "Apr", "May"]
    assert months[1].total == 1
    assert months[1].medium == 1
    assert months[-1].total == 3
    assert months[-1].low == 1


def test_year_weekly_trend_limits_to_last_weeks(findings) -> None:
    weeks = TrendAnalyzer(findings, now=NOW).year_weekly_trend(last=4)
    assert len(weeks) == 4
    assert weeks[-1].total == 2


def test_slide_summary(findings) -> None:
    slide = TrendAnalyzer(findings, now=NOW).slide_summary()
    assert slide.total == 5
    assert slide.open == 3
    assert slide.critical == 1
    assert slide.overdue == 1
    assert slide.risk_index == round((10 + 7 + 2 + 4 + 1) / 5)
    assert slide.compliance_rate == 80
    assert slide.closure_rate == 40


def test_slide_summary_empty() -> None:
    slide = TrendAnalyzer([], now=NOW).slide_summary()
    assert slide.total == 0
    assert slide.risk_index == 0
    assert slide.compliance_rate == 100
    assert slide.closure_rate == 0


def test_analyze_distributions(findings) -> None:
    report = TrendAnalyzer(findings, now=NOW).analyze()
    assert report.total == 5
    assert report.severity_counts == {"Critical": 1, "High": 1, "Low": 1,
                                      "Medium": 1, "Info": 1}
    assert report.status_counts["Open"] == 2
    assert report.overdue == 1
    assert report.critical_overdue == 1
    top = report.top_hosts[0]
    assert top.host == "web-01"
    assert (top.total, top.critical, top.high) == (2, 1, 1)
    assert len(report.weekly_trend) == 8
    assert report.slide is not None
