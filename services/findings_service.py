from dataclasses import dataclass, field
from typing import Callable, Optional
from loguru import logger
from analyzers.sla_analyzer import SlaAnalyzer
from analyzers.trend_analyzer import TrendAnalyzer
from config.settings import settings
from core.errors import InvalidUpdate, TrackerError
from core.filter_engine import filter_findings
from core.grouping_engine import assignee_groups, host_groups, owner_groups
from integrations.cloudflare_client import CloudflareClient
from integrations.internal_client import InternalClient
from integrations.source_client import SourceClient
from models.finding import (
    FilterCriteria, Finding, FindingUpdate, RetestResult, ServerSummary, Source,
    match_status, normalize_status, status_choices,
)
from models.metrics import AnalyticsReport, Group, SlaReport
from services.local_store import NotesStore


@dataclass
class DashboardState:
    findings: list[Finding] = field(default_factory=list)
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    selected: set[tuple[str, str]] = field(default_factory=set)
    summary: Optional[ServerSummary] = None

    def filtered(self) -> list[Finding]:
        return filter_findings(self.findings, self.criteria)

    def selection(self) -> list[Finding]:
        return [f for f in self.filtered() if f.ident in self.selected]

    def replace(self, finding: Finding, **changes) -> None:
        self.findings = [
            f.model_copy(update=changes) if f.ident == finding.ident else f
            for f in self.findings
        ]


def client_for(source) -> SourceClient:
    if Source(source) == Source.CLOUDFLARE:
        return CloudflareClient()
    return InternalClient()


class FindingsService:
    def __init__(self, client: Optional[SourceClient] = None,
                 notes: Optional[NotesStore] = None,
                 sla_thresholds: Optional[dict] = None):
        self.client = client or InternalClient()
        self.notes = notes or NotesStore()
        self.sla_thresholds = sla_thresholds or settings.SLA_THRESHOLDS
        self.state = DashboardState()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self, **server_filters) -> DashboardState:
        self.state.findings = self.client.fetch_findings(**server_filters)
        self.state.selected = set()
        return self.state

    def refresh_summary(self) -> ServerSummary:
        self.state.summary = self.client.get_summary()
        return self.state.summary

    # ------------------------------------------------------------------
    # Filtering and selection
    # ------------------------------------------------------------------
    def set_criteria(self, criteria: FilterCriteria) -> list[Finding]:
        self.state.criteria = criteria
        return self.state.filtered()

    def filtered(self) -> list[Finding]:
        return self.state.filtered()

    def select(self, findings: list[Finding]) -> None:
        self.state.selected |= {f.ident for f in findings}

    def select_all(self) -> None:
        self.state.selected = {f.ident for f in self.state.filtered()}

    def clear_selection(self) -> None:
        self.state.selected = set()

    def target(self) -> list[Finding]:
        return self.state.selection() if self.state.selected else self.state.filtered()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def host_groups(self) -> list[Group]:
        return host_groups(self.filtered())

    def assignee_groups(self, sort: str = "workload") -> list[Group]:
        return assignee_groups(self.filtered(), sort)

    def owner_groups(self, sort: str = "workload") -> list[Group]:
        return owner_groups(self.filtered(), sort)

    def sla(self) -> SlaAnalyzer:
        return SlaAnalyzer(self.filtered(), self.sla_thresholds)

    def sla_report(self) -> SlaReport:
        return self.sla().report()

    def analytics(self) -> AnalyticsReport:
        return TrendAnalyzer(self.filtered()).analyze()

    def trends(self) -> TrendAnalyzer:
        return TrendAnalyzer(self.filtered())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def bulk_update(self, status: Optional[str] = None,
                    comments: Optional[str] = None,
                    assignee: Optional[str] = None,
                    findings: Optional[list[Finding]] = None) -> int:
        source = self.client.source
        if status is not None:
            matched = match_status(status, source)
            if matched is None:
                raise InvalidUpdate(
                    f"Unknown {source.value} status '{status}'. "
                    f"Choose one of: {', '.join(status_choices(source))}"
                )
            status = matched
        if assignee is not None and source == Source.CLOUDFLARE:
            raise InvalidUpdate("Cloudflare findings have no assignee; "
                                "update the notes instead.")
        targets = self.target() if findings is None else findings
        if not targets:
            logger.info("Bulk update: nothing selected")
            return 0
        updates = [FindingUpdate.for_finding(f, status=status, comments=comments,
                                             assignee=assignee)
                   for f in targets]
        self.client.update_findings(updates)
        for f, u in zip(targets, updates):
            self.state.replace(f, **u.changes())
        logger.info(f"Updated {len(targets)} vulnerabilities")
        self.clear_selection()
        self._refresh_after("update")
        return len(targets)

    def bulk_retest(self, findings: Optional[list[Finding]] = None,
                    on_result: Optional[Callable[[RetestResult], None]] = None
                    ) -> list[RetestResult]:
        targets = self.target() if findings is None else findings
        if not targets:
            return []
        results = self.client.bulk_retest(targets, on_result=on_result)
        for f, r in zip(targets, results):
            if r.success and r.status:
                self.state.replace(f, status=normalize_status(r.status, self.client.source))
        self.clear_selection()
        self._refresh_after("retest")
        return results

    def _refresh_after(self, action: str) -> None:
        # The mutation has already been applied at this point.
        try:
            self.refresh_summary()
        except TrackerError as e:
            logger.error(f"Summary refresh after {action} failed: {e}")
            self.state.summary = None

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------
    def note_for(self, finding: Finding) -> str:
        return self.notes.get(finding.key)

    def add_note(self, finding: Finding, note: str) -> None:
        self.notes.add(finding.key, note)

    def remove_note(self, finding: Finding) -> None:
        self.notes.remove(finding.key)
