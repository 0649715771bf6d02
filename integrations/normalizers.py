"""
Record mapping at the backend boundary.

The internal scanner speaks snake_case, the Cloudflare feed Title Case.
Both are mapped onto the canonical Finding here and nowhere else.
"""

from typing import Callable, Iterable, Optional
from loguru import logger
from pydantic import ValidationError
from models.finding import (
    Finding, FindingUpdate, ServerSummary, Source,
    normalize_severity, normalize_status,
)


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int(value) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _timestamp(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return _text(value)


def internal_to_finding(record: dict) -> Finding:
    return Finding(
        source=Source.INTERNAL,
        name=_text(record.get("name")) or "",
        host=_text(record.get("host")) or "",
        severity=normalize_severity(record.get("severity")),
        status=normalize_status(record.get("status"), Source.INTERNAL),
        port=_text(record.get("port")),
        description=_text(record.get("description")),
        assignee=_text(record.get("assigned_to")),
        owner=_text(record.get("owner")),
        timestamp=_timestamp(record.get("timestamp")),
        days_overdue=_int(record.get("days_overdue")),
        comments=_text(record.get("comments")),
    )


def cloudflare_to_finding(record: dict) -> Finding:
    return Finding(
        source=Source.CLOUDFLARE,
        name=_text(record.get("Vulnerability Name")) or "",
        host=_text(record.get("Domain")) or "",
        severity=normalize_severity(record.get("Severity")),
        status=normalize_status(record.get("Status"), Source.CLOUDFLARE),
        description=_text(record.get("Description")),
        owner=_text(record.get("Business Owner")),
        timestamp=_timestamp(record.get("First Observed")),
        last_observed=_timestamp(record.get("Last Observed")),
        days_overdue=_int(record.get("Aging (Days)")),
        comments=_text(record.get("Notes")),
        curl_command=_text(record.get("Curl Command")),
    )


def normalize_records(records: Iterable[dict],
                      mapper: Callable[[dict], Finding]) -> list[Finding]:
    """Map raw records, discarding any without a name and host."""
    findings, dropped = [], 0
    for record in records or []:
        if not isinstance(record, dict):
            dropped += 1
            continue
        try:
            findings.append(mapper(record))
        except ValidationError as e:
            dropped += 1
            logger.debug(f"Discarding record: {e.errors()[0].get('msg')}")
    if dropped:
        logger.info(f"Discarded {dropped} record(s) missing name or host")
    return findings


def internal_update_payload(update: FindingUpdate) -> dict:
    payload = {"name": update.name, "host": update.host}
    if update.status is not None:
        payload["status"] = update.status
    if update.comments is not None:
        payload["comments"] = update.comments
    if update.assignee is not None:
        payload["assigned_to"] = update.assignee
    return payload


def cloudflare_update_payload(update: FindingUpdate) -> dict:
    payload = {"Domain": update.host, "Vulnerability Name": update.name}
    if update.status:
        payload["Status"] = update.status
    if update.comments is not None:
        payload["Notes"] = update.comments
    return payload


def to_server_summary(data: dict) -> ServerSummary:
    data = data or {}
    by_severity = data.get("by_severity") or {}
    return ServerSummary(
        total_vulnerabilities=_int(data.get("total_vulnerabilities")),
        fixed_vulnerabilities=_int(data.get("fixed_vulnerabilities")),
        severity_counts={
            sev: _int(by_severity.get(sev))
            for sev in ("critical", "high", "medium", "low", "info", "unknown")
            if sev in by_severity or sev in ("critical", "high", "medium", "low")
        },
    )
