from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from models.finding import Finding, UNASSIGNED


class SlaState(str, Enum):
    BREACHED = "breached"
    AT_RISK = "at-risk"
    ON_TRACK = "on-track"


class WorkloadHealth(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    HEALTHY = "healthy"


class Group(BaseModel):
    key: str
    findings: list[Finding] = Field(default_factory=list)
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0
    open_count: int = 0
    fixed_count: int = 0
    overdue_count: int = 0
    fix_rate: int = 0
    risk_score: int = 0
    completion_rate: int = 0
    hosts: list[str] = Field(default_factory=list)

    @property
    def is_unassigned(self) -> bool:
        return self.key == UNASSIGNED

    @property
    def severity_priority(self) -> int:
        return self.critical * 1000 + self.high * 100 + self.medium * 10 + self.low


class GroupSummary(BaseModel):
    groups: int = 0
    unassigned: int = 0
    total_findings: int = 0
    total_fixed: int = 0
    total_overdue: int = 0
    fix_rate: int = 0
    average_rate: int = 0


class SlaReport(BaseModel):
    total: int = 0
    breached: int = 0
    at_risk: int = 0
    critical_breached: int = 0
    high_breached: int = 0
    top_breaching_assignees: list[tuple[str, int]] = Field(default_factory=list)
    compliance_rate: int = 100


class TrendBucket(BaseModel):
    label: str
    total: int = 0
    open: int = 0
    closed: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class HostCount(BaseModel):
    host: str
    total: int
    critical: int = 0
    high: int = 0


class SlideSummary(BaseModel):
    total: int = 0
    open: int = 0
    critical: int = 0
    overdue: int = 0
    risk_index: int = 0
    compliance_rate: int = 100
    closure_rate: int = 0


class AnalyticsReport(BaseModel):
    total: int = 0
    severity_counts: dict[str, int] = Field(default_factory=dict)
    status_counts: dict[str, int] = Field(default_factory=dict)
    host_distribution: list[HostCount] = Field(default_factory=list)
    top_hosts: list[HostCount] = Field(default_factory=list)
    overdue: int = 0
    critical_overdue: int = 0
    weekly_trend: list[TrendBucket] = Field(default_factory=list)
    slide: Optional[SlideSummary] = None
