from integrations.normalizers import internal_to_finding, internal_update_payload
from integrations.source_client import SourceClient
from models.finding import Finding, FindingUpdate, Source


class InternalClient(SourceClient):
    source = Source.INTERNAL
    prefix = ""
    mapper = staticmethod(internal_to_finding)

    def _update_payload(self, update: FindingUpdate) -> dict:
        return internal_update_payload(update)

    def _retest_body(self, finding: Finding) -> dict:
        return {"name": finding.name, "host": finding.host}

    # ==================================================================
    # MOCK DATA
    # ==================================================================
    def _mock_records(self):
        teams = ["alice", "bob", "carol", ""]
        owners = ["Payments", "Identity", "Platform", ""]
        catalog = [
            ("OpenSSL RCE", "Critical", "Remote code execution in OpenSSL."),
            ("SMB Signing Disabled", "High", "SMB signing is not required."),
            ("Outdated Chrome", "Medium", "Browser below supported version."),
            ("Weak TLS Cipher", "Low", "Server accepts CBC-mode ciphers."),
            ("Banner Disclosure", "Info", "Service banner reveals version."),
        ]
        statuses = ["Open", "In Progress", "Triaged", "Fixed", "Resolved", "Closed"]
        records = []
        for i in range(1, 41):
            name, severity, description = catalog[i % len(catalog)]
            records.append({
                "name": name,
                "host": f"10.0.{i // 10}.{i}:{443 if i % 2 else 445}",
                "port": "443" if i % 2 else "445",
                "severity": severity,
                "status": statuses[i % len(statuses)],
                "assigned_to": teams[i % len(teams)],
                "owner": owners[(i // 3) % len(owners)],
                "description": description,
                "comments": "",
                "timestamp": f"2024-05-{(i % 28) + 1:02d}T10:00:00Z",
                "days_overdue": (i * 7) % 45 if i % 3 else 0,
            })
        return records
