"""Tests for core.grouping_engine — partitions, aggregates and ordering."""

from __future__ import annotations

from core.grouping_engine import (
    assignee_groups, build_group, by_assignee, by_host, by_owner, group_by,
    host_groups, owner_groups,
)
from models.finding import UNASSIGNED


def test_host_group_aggregates(make_finding) -> None:
    findings = [
        make_finding("OpenSSL RCE", "h1", severity="Critical", status="Open"),
        make_finding("Weak TLS Cipher", "h1", severity="Low", status="Fixed"),
    ]
    [group] = group_by(findings, by_host)
    assert group.key == "h1"
    assert group.total == 2
    assert group.critical == 1
    assert group.low == 1
    assert group.open_count == 1
    assert group.fixed_count == 1
    assert group.fix_rate == 50


def test_empty_group_has_zero_rates() -> None:
    group = build_group("nobody", [])
    assert group.total == 0
    assert group.fix_rate == 0
    assert group.completion_rate == 0


def test_groups_partition_the_input(make_finding) -> None:
    findings = [
        make_finding(f"vuln-{i}", f"h{i % 3}", assignee=["alice", "bob", None][i % 3])
        for i in range(10)
    ]
    for key_fn in (by_host, by_assignee, by_owner):
        groups = group_by(findings, key_fn)
        members = [f for g in groups for f in g.findings]
        assert len(members) == len(findings)
        assert {f.key for f in members} == {f.key for f in findings}
        assert sum(g.total for g in groups) == len(findings)


def test_blank_assignee_and_owner_go_to_unassigned(make_finding) -> None:
    findings = [
        make_finding("a", "h1", assignee="  ", owner=None),
        make_finding("b", "h1", assignee=None, owner=""),
        make_finding("c", "h1", assignee="alice", owner="Payments"),
    ]
    assignees = {g.key: g.total for g in assignee_groups(findings)}
    owners = {g.key: g.total for g in owner_groups(findings)}
    assert assignees == {UNASSIGNED: 2, "alice": 1}
    assert owners == {UNASSIGNED: 2, "Payments": 1}


def test_status_counts_are_disjoint(make_finding) -> None:
    findings = [
        make_finding("a", "h", status="Triaged"),
        make_finding("b", "h", status="Closed"),
        make_finding("c", "h", status="Accepted Risk"),
    ]
    group = build_group("h", findings)
    assert group.open_count == 1
    assert group.fixed_count == 1
    assert group.open_count + group.fixed_count <= group.total


def test_severity_counts_ignore_unknown(make_finding) -> None:
    group = build_group("h", [make_finding("a", "h", severity="Unknown"),
                              make_finding("b", "h", severity="Info")])
    assert group.info == 1
    assert group.critical + group.high + group.medium + group.low + group.info == 1


def test_distinct_hosts_strip_port(make_finding) -> None:
    group = build_group("alice", [
        make_finding("a", "10.0.0.1:443"),
        make_finding("b", "10.0.0.1:445"),
        make_finding("c", "10.0.0.2"),
    ])
    assert group.hosts == ["10.0.0.1", "10.0.0.2"]


def test_host_groups_order_by_severity_priority(make_finding) -> None:
    findings = [make_finding(f"high-{i}", "many-highs", severity="High") for i in range(5)]
    findings.append(make_finding("crit", "one-critical", severity="Critical"))
    findings += [make_finding(f"low-{i}", "lows", severity="Low") for i in range(20)]
    assert [g.key for g in host_groups(findings)] == ["one-critical", "many-highs", "lows"]


def test_host_groups_tie_breaks_on_total(make_finding) -> None:
    findings = [
        make_finding("a", "small", severity="Unknown"),
        make_finding("b", "big", severity="Unknown"),
        make_finding("c", "big", severity="Unknown"),
    ]
    assert [g.key for g in host_groups(findings)] == ["big", "small"]


def test_sort_modes(make_finding) -> None:
    findings = [
        make_finding("a", "h", assignee="busy"),
        make_finding("b", "h", assignee="busy"),
        make_finding("c", "h", assignee="busy"),
        make_finding("d", "h", assignee="late", days_overdue=12),
        make_finding("e", "h", assignee="done", status="Fixed"),
    ]
    assert assignee_groups(findings, "workload")[0].key == "busy"
    assert assignee_groups(findings, "overdue")[0].key == "late"
    assert assignee_groups(findings, "completion")[0].key == "done"


def test_fix_rate_stays_in_range(make_finding) -> None:
    statuses = ["Open", "Fixed", "Resolved", "Closed", "Triaged", "Accepted Risk"]
    for size in range(1, len(statuses) + 1):
        group = build_group("h", [make_finding(f"v{i}", "h", status=statuses[i])
                                  for i in range(size)])
        assert isinstance(group.fix_rate, int)
        assert 0 <= group.fix_rate <= 100


def test_group_carries_risk_and_completion(make_finding) -> None:
    group = build_group("h", [
        make_finding("a", "h", severity="Critical", status="Open"),
        make_finding("b", "h", severity="High", status="Fixed"),
        make_finding("c", "h", severity="High", status="Triaged"),
    ])
    assert group.risk_score == 1 * 10 + 2 * 5 + 2
    assert group.completion_rate == 33
