from typing import Callable, Iterable
from core.metrics_engine import completion_rate, risk_score
from models.finding import Finding, UNASSIGNED
from models.metrics import Group

KeyFn = Callable[[Finding], str]

SORT_MODES = ("workload", "overdue", "completion")

_SEVERITY_BUCKETS = ("critical", "high", "medium", "low", "info")


def by_host(finding: Finding) -> str:
    return finding.host


def by_assignee(finding: Finding) -> str:
    return (finding.assignee or "").strip() or UNASSIGNED


def by_owner(finding: Finding) -> str:
    return (finding.owner or "").strip() or UNASSIGNED


def _host_name(host: str) -> str:
    return host.split(":")[0]


def build_group(key: str, findings: list[Finding]) -> Group:
    counts = dict.fromkeys(_SEVERITY_BUCKETS, 0)
    hosts = []
    for f in findings:
        bucket = f.severity.value.lower()
        if bucket in counts:
            counts[bucket] += 1
        name = _host_name(f.host)
        if name not in hosts:
            hosts.append(name)

    total = len(findings)
    fixed = sum(1 for f in findings if f.is_fixed)
    open_count = sum(1 for f in findings if f.is_open)
    return Group(
        key=key,
        findings=list(findings),
        total=total,
        open_count=open_count,
        fixed_count=fixed,
        overdue_count=sum(1 for f in findings if f.is_overdue),
        fix_rate=round(fixed / total * 100) if total else 0,
        risk_score=risk_score(counts["critical"], counts["high"], open_count),
        completion_rate=completion_rate(fixed, total),
        hosts=hosts,
        **counts,
    )


def group_by(findings: Iterable[Finding], key_fn: KeyFn) -> list[Group]:
    """Partition findings by ``key_fn`` in order of first appearance.

    A blank key lands in the ``Unassigned`` group so nothing is dropped.
    """
    partitions: dict[str, list[Finding]] = {}
    for f in findings:
        key = (key_fn(f) or "").strip() or UNASSIGNED
        partitions.setdefault(key, []).append(f)
    return [build_group(key, items) for key, items in partitions.items()]


def sort_groups(groups: list[Group], mode: str = "workload") -> list[Group]:
    if mode == "overdue":
        return sorted(groups, key=lambda g: g.overdue_count, reverse=True)
    if mode == "completion":
        return sorted(groups, key=lambda g: g.completion_rate, reverse=True)
    return sorted(groups, key=lambda g: g.total, reverse=True)


def host_groups(findings: Iterable[Finding]) -> list[Group]:
    groups = group_by(findings, by_host)
    return sorted(groups, key=lambda g: (g.severity_priority, g.total), reverse=True)


def assignee_groups(findings: Iterable[Finding], sort: str = "workload") -> list[Group]:
    return sort_groups(group_by(findings, by_assignee), sort)


def owner_groups(findings: Iterable[Finding], sort: str = "workload") -> list[Group]:
    return sort_groups(group_by(findings, by_owner), sort)
