from datetime import datetime, timedelta, timezone
from typing import Optional
from loguru import logger
from core.filter_engine import as_utc, parse_timestamp
from models.finding import Finding
from models.metrics import AnalyticsReport, HostCount, SlideSummary, TrendBucket

RISK_INDEX_WEIGHTS = {"Critical": 10, "High": 7, "Medium": 4, "Low": 2, "Info": 1}
SLIDE_OPEN = ("Open", "Triaged")


def _week_start(dt: datetime) -> datetime:
    day = dt.replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=day.weekday())


def _month_end(start: datetime) -> datetime:
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


class TrendAnalyzer:
    def __init__(self, findings: list[Finding], now: Optional[datetime] = None):
        self.findings = findings
        self.now = as_utc(now) if now else datetime.now(timezone.utc)
        # Findings with an unparseable timestamp are left out of every bucket.
        self._dated = []
        for f in findings:
            ts = parse_timestamp(f.timestamp)
            if ts is not None:
                self._dated.append((f, ts))

    def _bucket(self, label: str, start: datetime, end: datetime) -> TrendBucket:
        bucket = TrendBucket(label=label)
        for f, ts in self._dated:
            if not (start <= ts < end):
                continue
            bucket.total += 1
            if f.is_fixed:
                bucket.closed += 1
            elif f.status == "Open":
                bucket.open += 1
            sev = f.severity.value.lower()
            if sev in ("critical", "high", "medium", "low"):
                setattr(bucket, sev, getattr(bucket, sev) + 1)
        return bucket

    def weekly_trend(self, weeks: int = 8) -> list[TrendBucket]:
        """Last ``weeks`` Monday-based weeks, oldest first; closed vs not closed."""
        current = _week_start(self.now)
        buckets = []
        for i in reversed(range(weeks)):
            start = current - timedelta(weeks=i)
            bucket = self._bucket(start.strftime("%b %d"), start, start + timedelta(weeks=1))
            bucket.open = bucket.total - bucket.closed
            buckets.append(bucket)
        return buckets

    def year_weekly_trend(self, last: int = 12) -> list[TrendBucket]:
        start = _week_start(self.now.replace(month=1, day=1))
        buckets = []
        index = 1
        while start <= self.now:
            buckets.append(self._bucket(f"W{index}", start, start + timedelta(weeks=1)))
            start += timedelta(weeks=1)
            index += 1
        return buckets[-last:]

    def monthly_trend(self) -> list[TrendBucket]:
        start = self.now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        buckets = []
        while start <= self.now:
            end = _month_end(start)
            buckets.append(self._bucket(start.strftime("%b"), start, end))
            start = end
        return buckets

    def slide_summary(self) -> SlideSummary:
        total = len(self.findings)
        open_count = sum(1 for f in self.findings if f.status in SLIDE_OPEN)
        overdue = sum(1 for f in self.findings if f.is_overdue)
        weighted = sum(RISK_INDEX_WEIGHTS.get(f.severity.value, 0) for f in self.findings)
        return SlideSummary(
            total=total,
            open=open_count,
            critical=sum(1 for f in self.findings if f.severity.value == "Critical"),
            overdue=overdue,
            risk_index=round(weighted / total) if total else 0,
            compliance_rate=round((total - overdue) / total * 100) if total else 100,
            closure_rate=round((total - open_count) / total * 100) if total else 0,
        )

    def analyze(self) -> AnalyticsReport:
        severity_counts: dict[str, int] = {}
        status_counts: dict[str, int] = {}
        host_counts: dict[str, int] = {}
        for f in self.findings:
            severity_counts[f.severity.value] = severity_counts.get(f.severity.value, 0) + 1
            status_counts[f.status] = status_counts.get(f.status, 0) + 1
            host_counts[f.host] = host_counts.get(f.host, 0) + 1

        ranked = sorted(host_counts.items(), key=lambda kv: kv[1], reverse=True)
        top_hosts = []
        for host, count in ranked[:5]:
            on_host = [f for f in self.findings if f.host == host]
            top_hosts.append(HostCount(
                host=host,
                total=count,
                critical=sum(1 for f in on_host if f.severity.value == "Critical"),
                high=sum(1 for f in on_host if f.severity.value == "High"),
            ))

        report = AnalyticsReport(
            total=len(self.findings),
            severity_counts=severity_counts,
            status_counts=status_counts,
            host_distribution=[HostCount(host=h, total=c) for h, c in ranked[:10]],
            top_hosts=top_hosts,
            overdue=sum(1 for f in self.findings if f.is_overdue),
            critical_overdue=sum(1 for f in self.findings
                                 if f.is_overdue and f.severity.value == "Critical"),
            weekly_trend=self.weekly_trend(),
            slide=self.slide_summary(),
        )
        logger.debug(f"Analytics computed over {report.total} findings")
        return report
