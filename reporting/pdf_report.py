import os
from datetime import datetime
from pathlib import Path
from typing import Optional
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from analyzers.sla_analyzer import SlaAnalyzer
from analyzers.trend_analyzer import TrendAnalyzer
from config.settings import settings
from core.grouping_engine import host_groups, owner_groups
from core.metrics_engine import top_risky
from models.finding import Finding, Severity
from loguru import logger

DARK_BLUE = colors.HexColor("#0D2B45")
BLUE = colors.HexColor("#1565C0")
GRAY = colors.HexColor("#F5F7FA")
SEV_COLORS = {
    Severity.CRITICAL.value: colors.HexColor("#D32F2F"),
    Severity.HIGH.value: colors.HexColor("#F57C00"),
    Severity.MEDIUM.value: colors.HexColor("#FBC02D"),
    Severity.LOW.value: colors.HexColor("#388E3C"),
    Severity.INFO.value: colors.HexColor("#1976D2"),
}

TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), DARK_BLUE),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [GRAY, colors.white]),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
    ("TOPPADDING", (0, 0), (-1, -1), 5),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ("LEFTPADDING", (0, 0), (-1, -1), 6),
]


class PDFReportGenerator:
    """Slide-ready summary of a filtered finding set."""

    def __init__(self, findings: list[Finding], title: str = "Vulnerability Report",
                 sla_thresholds: Optional[dict] = None,
                 output_dir: Optional[Path] = None):
        self.findings = findings
        self.title = title
        self.generated_at = datetime.now()
        self.output_dir = Path(output_dir or settings.REPORT_OUTPUT_DIR)
        self.analytics = TrendAnalyzer(findings).analyze()
        self.sla = SlaAnalyzer(findings, sla_thresholds or settings.SLA_THRESHOLDS).report()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(self) -> str:
        ts = self.generated_at.strftime("%Y%m%d_%H%M%S")
        path = os.path.join(self.output_dir, f"VulnTrack_Report_{ts}.pdf")
        doc = SimpleDocTemplate(path, pagesize=letter,
                                rightMargin=0.75*inch, leftMargin=0.75*inch,
                                topMargin=0.75*inch, bottomMargin=0.75*inch)
        story = []
        story += self._cover()
        story.append(PageBreak())
        story += self._key_metrics()
        story += self._severity()
        story += self._top_hosts()
        story += self._sla()
        story += self._owners()
        doc.build(story)
        logger.info(f"PDF generated: {path}")
        return path

    def _h1(self, text):
        return Paragraph(f"<font color='#0D2B45'><b>{text}</b></font>",
                         ParagraphStyle("h1", fontSize=16, spaceAfter=8, spaceBefore=16))

    def _body(self, text):
        return Paragraph(text, ParagraphStyle("body", fontSize=10, leading=14,
                                              alignment=TA_JUSTIFY, spaceAfter=8))

    def _table(self, rows, widths, extra=None):
        t = Table(rows, colWidths=widths, repeatRows=1)
        t.setStyle(TableStyle(TABLE_STYLE + (extra or [])))
        return t

    def _cover(self):
        title_style = ParagraphStyle("title", fontSize=24, textColor=colors.white,
                                     alignment=TA_CENTER, fontName="Helvetica-Bold")
        header = Table([[Paragraph(
            f'<b>{settings.APP_NAME}</b><br/>{self.title}', title_style
        )]], colWidths=[7*inch])
        header.setStyle(TableStyle([
            ("BACKGROUND", (0,0), (-1,-1), DARK_BLUE),
            ("ALIGN", (0,0), (-1,-1), "CENTER"),
            ("TOPPADDING", (0,0), (-1,-1), 40),
            ("BOTTOMPADDING", (0,0), (-1,-1), 40),
        ]))
        meta = Table([
            ["Date:", self.generated_at.strftime("%B %d, %Y")],
            ["Findings:", str(len(self.findings))],
            ["Classification:", "CONFIDENTIAL"],
        ], colWidths=[2*inch, 5*inch])
        meta.setStyle(TableStyle([
            ("FONTNAME", (0,0), (0,-1), "Helvetica-Bold"),
            ("FONTSIZE", (0,0), (-1,-1), 10),
            ("ROWBACKGROUNDS", (0,0), (-1,-1), [GRAY, colors.white]),
            ("TOPPADDING", (0,0), (-1,-1), 6),
            ("BOTTOMPADDING", (0,0), (-1,-1), 6),
            ("LEFTPADDING", (0,0), (-1,-1), 8),
        ]))
        return [header, Spacer(1, 0.3*inch), meta]

    def _key_metrics(self):
        slide = self.analytics.slide
        els = [self._h1("Key Metrics")]
        data = [
            ["Metric", "Value"],
            ["Total Findings", str(slide.total)],
            ["Open", str(slide.open)],
            ["Critical", str(slide.critical)],
            ["Overdue", str(slide.overdue)],
            ["Risk Index", str(slide.risk_index)],
            ["Compliance Rate", f"{slide.compliance_rate}%"],
            ["Closure Rate", f"{slide.closure_rate}%"],
        ]
        els.append(self._table(data, [3.5*inch, 3.5*inch], [
            ("BACKGROUND", (0,0), (-1,0), BLUE),
        ]))
        return els

    def _severity(self):
        els = [self._h1("Severity Breakdown")]
        rows = [["Severity", "Findings"]]
        extra = []
        for i, (sev, count) in enumerate(self.analytics.severity_counts.items(), 1):
            rows.append([sev, str(count)])
            extra += [("TEXTCOLOR", (0,i), (0,i), SEV_COLORS.get(sev, colors.gray)),
                      ("FONTNAME", (0,i), (0,i), "Helvetica-Bold")]
        els.append(self._table(rows, [3.5*inch, 3.5*inch], extra))
        return els

    def _top_hosts(self):
        els = [self._h1("Most Affected Hosts")]
        rows = [["Host", "Total", "Critical", "High", "Fix Rate"]]
        for g in host_groups(self.findings)[:10]:
            rows.append([g.key, str(g.total), str(g.critical), str(g.high), f"{g.fix_rate}%"])
        els.append(self._table(rows, [3*inch, 1*inch, 1*inch, 1*inch, 1*inch]))
        return els

    def _sla(self):
        els = [PageBreak(), self._h1("SLA Compliance")]
        els.append(self._body(
            f"<b>{self.sla.breached}</b> finding(s) have breached SLA "
            f"({self.sla.critical_breached} critical, {self.sla.high_breached} high); "
            f"<b>{self.sla.at_risk}</b> are approaching their deadline. "
            f"Compliance rate: <b>{self.sla.compliance_rate}%</b>."
        ))
        if self.sla.top_breaching_assignees:
            rows = [["Assignee", "Breaches"]]
            rows += [[name, str(count)] for name, count in self.sla.top_breaching_assignees]
            els.append(self._table(rows, [5*inch, 2*inch]))
        return els

    def _owners(self):
        els = [self._h1("Top Risky Owners")]
        risky = top_risky(owner_groups(self.findings))
        if not risky:
            els.append(self._body("No findings are assigned to a business owner."))
            return els
        rows = [["#", "Owner", "Critical", "High", "Open", "Risk Score"]]
        for i, g in enumerate(risky, 1):
            rows.append([str(i), g.key, str(g.critical), str(g.high),
                         str(g.open_count), str(g.risk_score)])
        els.append(self._table(rows, [0.5*inch, 2.5*inch, 1*inch, 1*inch, 1*inch, 1*inch]))
        return els
