from typing import Optional
from loguru import logger
from core.grouping_engine import by_assignee
from core.metrics_engine import AT_RISK_RATIO, classify_sla, sla_threshold
from models.finding import Finding
from models.metrics import SlaReport, SlaState

SEVERITY_RANK = {"Critical": 5, "High": 4, "Medium": 3, "Low": 2, "Info": 1}
OPEN_ONLY = ("Open", "In Progress")


class SlaAnalyzer:
    def __init__(self, findings: list[Finding], thresholds: Optional[dict] = None):
        self.findings = findings
        self.thresholds = thresholds

    def report(self, top_n: int = 5) -> SlaReport:
        breached = []
        at_risk = 0
        for f in self.findings:
            state = classify_sla(f, self.thresholds)
            if state == SlaState.BREACHED:
                breached.append(f)
            elif state == SlaState.AT_RISK:
                at_risk += 1

        per_assignee: dict[str, int] = {}
        for f in breached:
            key = by_assignee(f)
            per_assignee[key] = per_assignee.get(key, 0) + 1
        top = sorted(per_assignee.items(), key=lambda kv: kv[1], reverse=True)[:top_n]

        total = len(self.findings)
        report = SlaReport(
            total=total,
            breached=len(breached),
            at_risk=at_risk,
            critical_breached=sum(1 for f in breached if f.severity.value == "Critical"),
            high_breached=sum(1 for f in breached if f.severity.value == "High"),
            top_breaching_assignees=top,
            compliance_rate=round((total - len(breached)) / total * 100) if total else 100,
        )
        logger.debug(
            f"SLA: {report.breached} breached, {report.at_risk} at risk of {total}"
        )
        return report

    def attention_list(self, severity: Optional[str] = None,
                       status: str = "open-only",
                       host: Optional[str] = None,
                       assignee: Optional[str] = None) -> list[Finding]:
        """Overdue or near-deadline findings, most severe and oldest first."""
        items = [
            f for f in self.findings
            if f.days_overdue > 0
            or f.days_overdue >= sla_threshold(f, self.thresholds) * AT_RISK_RATIO
        ]
        if severity and severity != "all":
            items = [f for f in items if f.severity.value == severity]
        if status == "open-only":
            items = [f for f in items if f.status in OPEN_ONLY]
        elif status and status != "all":
            items = [f for f in items if f.status == status]
        if host:
            needle = host.lower()
            items = [f for f in items if needle in f.host.lower()]
        if assignee and assignee != "all":
            if assignee == "unassigned":
                items = [f for f in items if not (f.assignee or "").strip()]
            else:
                items = [f for f in items if f.assignee == assignee]

        return sorted(
            items,
            key=lambda f: (SEVERITY_RANK.get(f.severity.value, 0), f.days_overdue),
            reverse=True,
        )
