from typing import Optional
from config.settings import settings
from integrations.api_client import ApiClient
from integrations.normalizers import cloudflare_to_finding, cloudflare_update_payload
from integrations.source_client import SourceClient
from models.finding import Finding, FindingUpdate, Source


class CloudflareClient(SourceClient):
    """Cloudflare scan feed; the backend answers in Title Case."""

    source = Source.CLOUDFLARE
    mapper = staticmethod(cloudflare_to_finding)

    def __init__(self, api: Optional[ApiClient] = None, mock: Optional[bool] = None):
        super().__init__(api=api, mock=mock)
        self.prefix = settings.CLOUDFLARE_BASE_PATH.rstrip("/")

    def fetch_findings(self, domain: Optional[str] = None,
                       severity: Optional[str] = None,
                       status: Optional[str] = None,
                       owner: Optional[str] = None) -> list[Finding]:
        return super().fetch_findings(domain=domain, severity=severity,
                                      status=status, owner=owner)

    def _update_payload(self, update: FindingUpdate) -> dict:
        return cloudflare_update_payload(update)

    def _retest_body(self, finding: Finding) -> dict:
        return {"domain": finding.host, "vulnerability_name": finding.name}

    # ==================================================================
    # MOCK DATA
    # ==================================================================
    def _mock_records(self):
        domains = ["shop.example.com", "api.example.com", "status.example.com",
                   "cdn.example.com", "auth.example.com", "docs.example.com",
                   "mail.example.com"]
        catalog = [
            ("Missing HSTS Header", "Medium"),
            ("Exposed .git Directory", "Critical"),
            ("Open Redirect", "High"),
            ("Cookie Without Secure Flag", "Low"),
        ]
        statuses = ["open", "Fixed", "work in progress", "Accepted Risk"]
        owners = ["Web Team", "API Team", None]
        records = []
        for i in range(1, 25):
            name, severity = catalog[i % len(catalog)]
            records.append({
                "Domain": domains[i % len(domains)],
                "Vulnerability Name": name,
                "Severity": severity,
                "Status": statuses[i % len(statuses)],
                "First Observed": f"2024-0{(i % 5) + 1}-{(i % 27) + 1:02d}T08:00:00Z",
                "Last Observed": 1715760000000 + i * 86_400_000,
                "Aging (Days)": i * 4,
                "Business Owner": owners[i % len(owners)],
                "Notes": None,
                "Description": f"{name} detected on {domains[i % len(domains)]}.",
                "Curl Command": f"curl -sI https://{domains[i % len(domains)]}/",
            })
        return records
