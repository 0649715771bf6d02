from datetime import datetime
from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

UNASSIGNED = "Unassigned"


class Source(str, Enum):
    INTERNAL = "internal"
    CLOUDFLARE = "cloudflare"


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFO = "Info"
    UNKNOWN = "Unknown"


class InternalStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    TRIAGED = "Triaged"
    FIXED = "Fixed"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    ACCEPTED_RISK = "Accepted Risk"
    FALSE_POSITIVE = "False Positive"


class CloudflareStatus(str, Enum):
    OPEN = "Open"
    WORK_IN_PROGRESS = "Work in Progress"
    FIXED = "Fixed"
    ACCEPTED_RISK = "Accepted Risk"


STATUS_VOCABULARY = {
    Source.INTERNAL: InternalStatus,
    Source.CLOUDFLARE: CloudflareStatus,
}

OPEN_STATUSES = frozenset({"Open", "In Progress", "Triaged"})
FIXED_STATUSES = frozenset({"Fixed", "Resolved", "Closed"})

# Raw observation timestamps: ISO strings from the internal scanner,
# ISO strings or epoch milliseconds from the Cloudflare feed.
RawTimestamp = Optional[Union[str, int, float]]


def normalize_severity(value) -> Severity:
    lower = str(value or "").strip().lower()
    for sev in Severity:
        if sev.value.lower() == lower:
            return sev
    return Severity.UNKNOWN


def status_choices(source: Source = Source.INTERNAL) -> list[str]:
    return [s.value for s in STATUS_VOCABULARY[Source(source)]]


def match_status(value, source: Source = Source.INTERNAL) -> Optional[str]:
    """Exact vocabulary entry for ``value`` (case-insensitive), or None."""
    lower = str(value or "").strip().lower()
    for status in status_choices(source):
        if status.lower() == lower:
            return status
    return None


def normalize_status(value, source: Source = Source.INTERNAL) -> str:
    """Ingest-time status: unknown values fall back to Open."""
    return match_status(value, source) or STATUS_VOCABULARY[Source(source)].OPEN.value


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Source = Source.INTERNAL
    name: str = Field(min_length=1)
    host: str = Field(min_length=1)
    severity: Severity = Severity.UNKNOWN
    status: str = "Open"
    port: Optional[str] = None
    description: Optional[str] = None
    assignee: Optional[str] = None
    owner: Optional[str] = None
    timestamp: RawTimestamp = None
    last_observed: RawTimestamp = None
    days_overdue: int = 0
    comments: Optional[str] = None
    curl_command: Optional[str] = None

    @field_validator("name", "host")
    @classmethod
    def _strip_identity(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @property
    def key(self) -> str:
        return f"{self.host}-{self.name}"

    @property
    def ident(self) -> tuple[str, str]:
        return (self.host, self.name)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def is_fixed(self) -> bool:
        return self.status in FIXED_STATUSES

    @property
    def is_overdue(self) -> bool:
        return self.days_overdue > 0


class DateRange(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self.start is not None or self.end is not None


class FilterCriteria(BaseModel):
    severity: list[str] = Field(default_factory=list)
    status: list[str] = Field(default_factory=list)
    assignee: list[str] = Field(default_factory=list)
    host: list[str] = Field(default_factory=list)
    date_range: DateRange = Field(default_factory=DateRange)
    search: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.severity or self.status or self.assignee or self.host
                    or self.date_range.active or self.search)


class FindingUpdate(BaseModel):
    name: str
    host: str
    status: Optional[str] = None
    comments: Optional[str] = None
    assignee: Optional[str] = None

    @classmethod
    def for_finding(cls, finding: Finding, **changes) -> "FindingUpdate":
        return cls(name=finding.name, host=finding.host, **changes)

    def changes(self) -> dict:
        return {k: v for k, v in (("status", self.status),
                                  ("comments", self.comments),
                                  ("assignee", self.assignee))
                if v is not None}


class RetestResult(BaseModel):
    name: str
    host: str
    source: Source = Source.INTERNAL
    success: bool
    status: Optional[str] = None
    findings_count: Optional[int] = None
    error: Optional[str] = None


class ServerSummary(BaseModel):
    total_vulnerabilities: int = 0
    fixed_vulnerabilities: int = 0
    severity_counts: dict[str, int] = Field(default_factory=dict)
