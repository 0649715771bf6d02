from typing import Callable, Optional
from loguru import logger
from config.settings import settings
from integrations.api_client import ApiClient
from integrations.normalizers import normalize_records, to_server_summary
from models.finding import Finding, FindingUpdate, RetestResult, ServerSummary, Source


class SourceClient:
    """Shared fetch/update/retest flow for one finding source.

    Subclasses provide the endpoint prefix, the record mapper, the wire
    shape of updates and retest bodies, and their own mock data.
    """

    source: Source = Source.INTERNAL
    prefix: str = ""
    mapper: Callable[[dict], Finding]

    def __init__(self, api: Optional[ApiClient] = None, mock: Optional[bool] = None):
        self.mock = settings.MOCK_MODE if mock is None else mock
        self.api = api or ApiClient()
        if self.mock:
            logger.warning(f"{type(self).__name__}: MOCK MODE active.")

    def _endpoint(self, path: str) -> str:
        return f"{self.prefix}{path}"

    # ------------------------------------------------------------------
    # Findings
    # ------------------------------------------------------------------
    def fetch_findings(self, **filters) -> list[Finding]:
        if self.mock:
            raw = self._mock_records()
        else:
            params = {k: v for k, v in filters.items() if v}
            raw = self.api.get(self._endpoint("/vulnerabilities"), params=params or None)
        findings = normalize_records(raw, type(self).mapper)
        logger.info(f"{self.source.value}: {len(findings)} findings loaded")
        return findings

    def get_summary(self) -> ServerSummary:
        if self.mock:
            return self._mock_summary()
        return to_server_summary(self.api.get(self._endpoint("/summary")))

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------
    def update_findings(self, updates: list[FindingUpdate]) -> dict:
        if not updates:
            return {"status": "success", "message": "Nothing to update"}
        if self.mock:
            logger.info(f"MOCK update of {len(updates)} finding(s)")
            return {"status": "success",
                    "message": f"Updated {len(updates)} vulnerabilities"}
        body = {"updates": [self._update_payload(u) for u in updates]}
        return self.api.post(self._endpoint("/update"), body=body)

    def update_finding(self, finding: Finding, status: Optional[str] = None,
                       comments: Optional[str] = None,
                       assignee: Optional[str] = None) -> dict:
        update = FindingUpdate.for_finding(finding, status=status,
                                           comments=comments, assignee=assignee)
        return self.update_findings([update])

    # ------------------------------------------------------------------
    # Retest
    # ------------------------------------------------------------------
    def retest(self, finding: Finding) -> RetestResult:
        """Retest one finding; a failure is captured in the result, not raised."""
        try:
            if self.mock:
                data = self._mock_retest(finding)
            else:
                data = self.api.post(self._endpoint("/retest"),
                                     body=self._retest_body(finding))
            data = data if isinstance(data, dict) else {}
            return RetestResult(
                name=finding.name,
                host=finding.host,
                source=self.source,
                success=True,
                status=data.get("status"),
                findings_count=data.get("findingsCount"),
            )
        except Exception as e:
            logger.error(f"Retest failed for {finding.key}: {e}")
            return RetestResult(name=finding.name, host=finding.host,
                                source=self.source, success=False, error=str(e))

    def bulk_retest(self, findings: list[Finding],
                    on_result: Optional[Callable[[RetestResult], None]] = None
                    ) -> list[RetestResult]:
        """Retest sequentially, one request at a time, in input order."""
        results = []
        for finding in findings:
            result = self.retest(finding)
            results.append(result)
            if on_result:
                on_result(result)
        failed = sum(1 for r in results if not r.success)
        logger.info(f"Bulk retest: {len(results)} done, {failed} failed")
        return results

    # ------------------------------------------------------------------
    # Source-specific hooks
    # ------------------------------------------------------------------
    def _update_payload(self, update: FindingUpdate) -> dict:
        raise NotImplementedError

    def _retest_body(self, finding: Finding) -> dict:
        raise NotImplementedError

    def _mock_records(self) -> list[dict]:
        return []

    def _mock_summary(self) -> ServerSummary:
        findings = normalize_records(self._mock_records(), type(self).mapper)
        counts: dict[str, int] = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        for f in findings:
            sev = f.severity.value.lower()
            counts[sev] = counts.get(sev, 0) + 1
        return ServerSummary(
            total_vulnerabilities=len(findings),
            fixed_vulnerabilities=sum(1 for f in findings if f.is_fixed),
            severity_counts=counts,
        )

    def _mock_retest(self, finding: Finding) -> dict:
        fixed = finding.severity.value in ("Low", "Info")
        return {"success": True, "status": "fixed" if fixed else "open",
                "findingsCount": 0 if fixed else 1}
