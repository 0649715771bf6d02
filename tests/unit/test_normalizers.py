"""Tests for integrations.normalizers — wire records to Finding and back."""

from __future__ import annotations

import pytest

from integrations.normalizers import (
    cloudflare_to_finding, cloudflare_update_payload, internal_to_finding,
    internal_update_payload, normalize_records, to_server_summary,
)
from models.finding import FindingUpdate, Severity, Source


def test_internal_record_mapping() -> None:
    finding = internal_to_finding({
        "name": " OpenSSL RCE ",
        "host": "10.0.0.1",
        "port": 443,
        "severity": "CRITICAL",
        "status": "in progress",
        "assigned_to": "alice",
        "owner": "Payments",
        "timestamp": "2024-05-01T10:00:00Z",
        "days_overdue": "12",
        "comments": "",
    })
    assert finding.source == Source.INTERNAL
    assert finding.name == "OpenSSL RCE"
    assert finding.port == "443"
    assert finding.severity == Severity.CRITICAL
    assert finding.status == "In Progress"
    assert finding.assignee == "alice"
    assert finding.days_overdue == 12
    assert finding.comments is None
    assert finding.key == "10.0.0.1-OpenSSL RCE"


def test_cloudflare_record_mapping() -> None:
    finding = cloudflare_to_finding({
        "Domain": "shop.example.com",
        "Vulnerability Name": "Open Redirect",
        "Severity": "high",
        "Status": "work in progress",
        "First Observed": "2024-05-01T08:00:00Z",
        "Last Observed": 1715760000000,
        "Aging (Days)": 9,
        "Business Owner": "Web Team",
        "Notes": "ticket WEB-12",
        "Curl Command": "curl -sI https://shop.example.com/",
    })
    assert finding.source == Source.CLOUDFLARE
    assert finding.host == "shop.example.com"
    assert finding.status == "Work in Progress"
    assert finding.days_overdue == 9
    assert finding.owner == "Web Team"
    assert finding.comments == "ticket WEB-12"
    assert finding.last_observed == 1715760000000
    assert finding.assignee is None


@pytest.mark.parametrize("raw, expected", [
    ("Open", "Open"),
    ("FIXED", "Fixed"),
    ("accepted risk", "Accepted Risk"),
    ("In Progress", "Open"),
    (None, "Open"),
])
def test_cloudflare_status_vocabulary(raw, expected) -> None:
    record = {"Domain": "d", "Vulnerability Name": "v", "Status": raw}
    assert cloudflare_to_finding(record).status == expected


@pytest.mark.parametrize("raw", ["", "severe", None, 5])
def test_unknown_severity(raw) -> None:
    finding = internal_to_finding({"name": "n", "host": "h", "severity": raw})
    assert finding.severity == Severity.UNKNOWN


@pytest.mark.parametrize("raw", ["abc", None, "", float("inf")])
def test_bad_days_overdue_defaults_to_zero(raw) -> None:
    finding = internal_to_finding({"name": "n", "host": "h", "days_overdue": raw})
    assert finding.days_overdue == 0


def test_normalize_records_discards_incomplete() -> None:
    records = [
        {"name": "kept", "host": "h1"},
        {"name": "", "host": "h1"},
        {"name": "no host"},
        {"name": "   ", "host": "   "},
        "not a record",
        None,
        {"name": "also kept", "host": "h2"},
    ]
    findings = normalize_records(records, internal_to_finding)
    assert [f.name for f in findings] == ["kept", "also kept"]


def test_normalize_records_handles_none() -> None:
    assert normalize_records(None, internal_to_finding) == []


def test_internal_update_payload() -> None:
    update = FindingUpdate(name="n", host="h", status="Fixed", assignee="bob")
    assert internal_update_payload(update) == {
        "name": "n", "host": "h", "status": "Fixed", "assigned_to": "bob",
    }


def test_cloudflare_update_payload_uses_title_case() -> None:
    update = FindingUpdate(name="n", host="d", status="Fixed", comments="done",
                           assignee="ignored")
    assert cloudflare_update_payload(update) == {
        "Domain": "d", "Vulnerability Name": "n", "Status": "Fixed", "Notes": "done",
    }


def test_server_summary() -> None:
    summary = to_server_summary({
        "total_vulnerabilities": 12,
        "fixed_vulnerabilities": "4",
        "by_severity": {"critical": 2, "high": 3, "info": 1},
    })
    assert summary.total_vulnerabilities == 12
    assert summary.fixed_vulnerabilities == 4
    assert summary.severity_counts == {"critical": 2, "high": 3, "medium": 0,
                                       "low": 0, "info": 1}


def test_server_summary_of_nothing() -> None:
    summary = to_server_summary(None)
    assert summary.total_vulnerabilities == 0
    assert summary.severity_counts["critical"] == 0
