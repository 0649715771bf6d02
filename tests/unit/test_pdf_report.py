"""Tests for reporting.pdf_report — the PDF summary builds end to end."""

from __future__ import annotations

from pathlib import Path

from reporting.pdf_report import PDFReportGenerator


def test_report_is_written(make_finding, tmp_path) -> None:
    findings = [
        make_finding("OpenSSL RCE", "10.0.0.1:443", severity="Critical",
                     owner="Payments", assignee="alice", days_overdue=5,
                     timestamp="2024-05-01T10:00:00Z"),
        make_finding("Weak TLS Cipher", "10.0.0.2", severity="Low", status="Fixed",
                     owner="Identity"),
        make_finding("Banner Disclosure", "10.0.0.2", severity="Info"),
    ]
    path = Path(PDFReportGenerator(findings, title="Weekly Review",
                                   output_dir=tmp_path).generate())
    assert path.exists()
    assert path.name.startswith("VulnTrack_Report_")
    assert path.read_bytes()[:4] == b"%PDF"


def test_report_with_no_findings(tmp_path) -> None:
    path = Path(PDFReportGenerator([], output_dir=tmp_path).generate())
    assert path.stat().st_size > 0
