from datetime import datetime, timezone
from typing import Iterable, Optional
from models.finding import Finding, FilterCriteria, RawTimestamp

SEARCH_FIELDS = ("name", "description", "host", "port", "severity",
                 "status", "assignee", "comments")


def parse_timestamp(value: RawTimestamp) -> Optional[datetime]:
    """Parse an observation timestamp into an aware UTC datetime.

    Strings are ISO-8601 (a trailing ``Z`` is accepted, naive values are
    taken as UTC). Numbers are epoch milliseconds. Anything else, including
    blanks, returns None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        text = str(value).strip()
        if not text:
            return None
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, TypeError, OverflowError, OSError):
        return None
    return as_utc(dt)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _field_text(finding: Finding, field: str) -> str:
    value = getattr(finding, field, None)
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def _in_date_range(finding: Finding, criteria: FilterCriteria) -> bool:
    observed = parse_timestamp(finding.timestamp)
    if observed is None:
        return False
    start, end = criteria.date_range.start, criteria.date_range.end
    if start is not None and observed < as_utc(start):
        return False
    if end is not None and observed > as_utc(end):
        return False
    return True


def _matches_search(finding: Finding, term: str) -> bool:
    term = term.lower()
    return any(term in _field_text(finding, f).lower() for f in SEARCH_FIELDS)


def matches(finding: Finding, criteria: FilterCriteria) -> bool:
    if criteria.severity and finding.severity.value not in criteria.severity:
        return False
    if criteria.status and finding.status not in criteria.status:
        return False
    if criteria.assignee and finding.assignee not in criteria.assignee:
        return False
    if criteria.host and finding.host not in criteria.host:
        return False
    if criteria.date_range.active and not _in_date_range(finding, criteria):
        return False
    if criteria.search and not _matches_search(finding, criteria.search):
        return False
    return True


def filter_findings(findings: Iterable[Finding],
                    criteria: Optional[FilterCriteria] = None) -> list[Finding]:
    if criteria is None or criteria.is_empty:
        return list(findings)
    return [f for f in findings if matches(f, criteria)]
