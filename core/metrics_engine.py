from typing import Iterable, Optional
from models.finding import Finding
from models.metrics import Group, GroupSummary, SlaState, WorkloadHealth

DEFAULT_SLA_THRESHOLDS = {
    "Critical": 1,
    "High": 7,
    "Medium": 30,
    "Low": 90,
    "Info": 180,
}
FALLBACK_THRESHOLD = 30
AT_RISK_RATIO = 0.8

RISK_WEIGHTS = {"critical": 10, "high": 5, "open": 1}


def risk_score(critical: int, high: int, open_count: int) -> int:
    return (critical * RISK_WEIGHTS["critical"]
            + high * RISK_WEIGHTS["high"]
            + open_count * RISK_WEIGHTS["open"])


def completion_rate(closed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(closed / total * 100)


def sla_threshold(finding: Finding, thresholds: Optional[dict] = None) -> int:
    thresholds = thresholds or DEFAULT_SLA_THRESHOLDS
    return thresholds.get(finding.severity.value, FALLBACK_THRESHOLD)


def classify_sla(finding: Finding, thresholds: Optional[dict] = None) -> SlaState:
    threshold = sla_threshold(finding, thresholds)
    days = finding.days_overdue
    if days > threshold:
        return SlaState.BREACHED
    if 0 < days <= threshold and days >= threshold * AT_RISK_RATIO:
        return SlaState.AT_RISK
    return SlaState.ON_TRACK


def workload_health(group: Group) -> WorkloadHealth:
    if group.overdue_count > 0:
        return WorkloadHealth.CRITICAL
    if group.open_count > 10:
        return WorkloadHealth.HIGH
    if group.open_count > 5:
        return WorkloadHealth.MEDIUM
    return WorkloadHealth.HEALTHY


def _assigned(groups: Iterable[Group]) -> list[Group]:
    return [g for g in groups if not g.is_unassigned]


def top_risky(groups: Iterable[Group], n: int = 3) -> list[Group]:
    return sorted(_assigned(groups), key=lambda g: g.risk_score, reverse=True)[:n]


def most_improved(groups: Iterable[Group], min_findings: int = 5) -> Optional[Group]:
    candidates = [g for g in _assigned(groups) if g.total >= min_findings]
    if not candidates:
        return None
    return max(candidates, key=lambda g: g.fix_rate)


def average_fix_rate(groups: Iterable[Group]) -> int:
    assigned = _assigned(groups)
    if not assigned:
        return 0
    return round(sum(g.fix_rate for g in assigned) / len(assigned))


def owner_summary(groups: list[Group]) -> GroupSummary:
    unassigned = next((g.total for g in groups if g.is_unassigned), 0)
    total = sum(g.total for g in groups)
    fixed = sum(g.fixed_count for g in groups)
    return GroupSummary(
        groups=len(_assigned(groups)),
        unassigned=unassigned,
        total_findings=total,
        total_fixed=fixed,
        total_overdue=sum(g.overdue_count for g in groups),
        fix_rate=completion_rate(fixed, total),
        average_rate=average_fix_rate(groups),
    )


def assignee_summary(groups: list[Group]) -> GroupSummary:
    summary = owner_summary(groups)
    summary.average_rate = (
        round(sum(g.completion_rate for g in groups) / len(groups)) if groups else 0
    )
    return summary
