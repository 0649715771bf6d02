import csv
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional
from loguru import logger
from xlsxwriter.workbook import Workbook
from config.settings import settings
from core.errors import ExportError
from models.finding import Finding, Source

INTERNAL_FIELDS = {
    "name": "Vulnerability Name",
    "description": "Description",
    "host": "Host",
    "port": "Port",
    "severity": "Severity",
    "status": "Status",
    "assignee": "Assigned To",
    "comments": "Comments",
    "timestamp": "Timestamp",
    "days_overdue": "Days Overdue",
}

CLOUDFLARE_FIELDS = {
    "host": "Domain",
    "name": "Vulnerability Name",
    "severity": "Severity",
    "status": "Status",
    "timestamp": "First Observed",
    "last_observed": "Last Observed",
    "days_overdue": "Aging (Days)",
    "owner": "Business Owner",
    "comments": "Notes",
}

FORMATS = ("csv", "xlsx")


def field_labels(source: Source) -> dict[str, str]:
    return CLOUDFLARE_FIELDS if Source(source) == Source.CLOUDFLARE else INTERNAL_FIELDS


def to_rows(findings: Iterable[Finding], labels: dict[str, str],
            fields: Optional[list[str]] = None) -> list[dict]:
    """Flatten findings into ``{header: value}`` rows, in ``labels`` order."""
    wanted = [f for f in labels if not fields or f in fields]
    rows = []
    for finding in findings:
        row = {}
        for name in wanted:
            value = getattr(finding, name)
            row[labels[name]] = getattr(value, "value", value)
        rows.append(row)
    return rows


def export_filename(title: str, fmt: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d-%H%M")
    slug = re.sub(r"\s+", "-", title.strip()).lower()
    return f"{slug}-{stamp}.{fmt}"


def write_csv(rows: list[dict], headers: list[str], path: Path) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=headers)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: "" if v is None else v for k, v in row.items()})
    return path


def write_xlsx(rows: list[dict], headers: list[str], path: Path,
               sheet: str = "Vulnerabilities") -> Path:
    workbook = Workbook(str(path))
    worksheet = workbook.add_worksheet(sheet)
    header_fmt = workbook.add_format({"bold": True, "bg_color": "#0D2B45",
                                      "font_color": "#FFFFFF"})
    for col, header in enumerate(headers):
        worksheet.write(0, col, header, header_fmt)
    for row_index, row in enumerate(rows, 1):
        for col, header in enumerate(headers):
            value = row.get(header)
            worksheet.write(row_index, col, "" if value is None else value)
    workbook.close()
    return path


def export_findings(findings: list[Finding], fmt: str = "csv",
                    source: Source = Source.INTERNAL,
                    fields: Optional[list[str]] = None,
                    title: str = "vulnerabilities",
                    output_dir: Optional[Path] = None) -> Path:
    if fmt not in FORMATS:
        raise ExportError(f"Unsupported export format: {fmt}")
    labels = field_labels(source)
    unknown = [f for f in fields or [] if f not in labels]
    if unknown:
        raise ExportError(f"Unknown field(s): {', '.join(unknown)}")

    out = Path(output_dir or settings.REPORT_OUTPUT_DIR)
    out.mkdir(parents=True, exist_ok=True)
    path = out / export_filename(title, fmt)
    rows = to_rows(findings, labels, fields)
    headers = [label for name, label in labels.items() if not fields or name in fields]
    try:
        if fmt == "csv":
            write_csv(rows, headers, path)
        else:
            write_xlsx(rows, headers, path)
    except OSError as e:
        raise ExportError(f"Cannot write {path}: {e}") from e
    logger.info(f"Exported {len(rows)} finding(s) to {path}")
    return path
