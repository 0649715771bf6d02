import sys
from datetime import datetime, time
import click
from loguru import logger
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box
from config.settings import settings
from core.errors import AuthenticationRequired, TrackerError
from core.grouping_engine import SORT_MODES
from core.metrics_engine import (
    assignee_summary, classify_sla, most_improved, owner_summary, top_risky,
    workload_health,
)
from models.finding import (
    DateRange, FilterCriteria, Source, match_status, status_choices,
)
from models.metrics import SlaState

console = Console()

SEV_COLORS = {
    "Critical": "bold red", "High": "bold orange3",
    "Medium": "bold yellow", "Low": "bold green", "Info": "bold blue",
}
HEALTH_COLORS = {
    "critical": "red", "high": "orange3", "medium": "yellow", "healthy": "green",
}
SLA_COLORS = {
    SlaState.BREACHED: "red", SlaState.AT_RISK: "orange3", SlaState.ON_TRACK: "green",
}


def banner():
    console.print(f"[bold blue]{settings.APP_NAME} v{settings.VERSION}[/bold blue]"
                  f"  |  Vulnerability Findings Tracker")
    mode = "[yellow]MOCK[/yellow]" if settings.MOCK_MODE else "[green]LIVE[/green]"
    console.print(f"  Mode: {mode}  |  Backend: {settings.API_BASE_URL}\n")
    for w in settings.validate():
        console.print(f"  [yellow]⚠  {w}[/yellow]")


def fail(e: Exception):
    if isinstance(e, AuthenticationRequired):
        console.print("\n[red]✘ Authentication required.[/red] "
                      "Run [cyan]python main.py login[/cyan] and try again.\n")
    else:
        console.print(f"\n[red]✘ {e}[/red]")
        console.print("  Re-run the command to retry.\n")
    sys.exit(1)


def _parse_day(value, end_of_day=False):
    if not value:
        return None
    try:
        day = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid date: {value} (expected YYYY-MM-DD)")
    if end_of_day and len(value) <= 10:
        day = datetime.combine(day.date(), time.max)
    return day


def filter_options(fn):
    opts = [
        click.option("--source", type=click.Choice([s.value for s in Source]),
                     default=Source.INTERNAL.value, show_default=True),
        click.option("--severity", multiple=True, help="Repeatable."),
        click.option("--status", multiple=True, help="Repeatable."),
        click.option("--assignee", multiple=True, help="Repeatable."),
        click.option("--host", multiple=True, help="Repeatable."),
        click.option("--since", help="First observed on/after YYYY-MM-DD."),
        click.option("--until", help="First observed on/before YYYY-MM-DD."),
        click.option("--search", default="", help="Free-text search."),
    ]
    for opt in reversed(opts):
        fn = opt(fn)
    return fn


def load_service(source, severity=(), status=(), assignee=(), host=(),
                 since=None, until=None, search=""):
    from services.findings_service import FindingsService, client_for

    criteria = FilterCriteria(
        severity=list(severity), status=list(status),
        assignee=list(assignee), host=list(host),
        date_range=DateRange(start=_parse_day(since), end=_parse_day(until, True)),
        search=search or "",
    )
    service = FindingsService(client=client_for(source))
    try:
        with Progress(SpinnerColumn(), TextColumn("{task.description}"),
                      console=console, transient=True) as p:
            p.add_task("Fetching findings...", total=None)
            service.load()
    except TrackerError as e:
        fail(e)
    service.set_criteria(criteria)
    return service


def findings_table(findings, limit=None, notes=None):
    tbl = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan")
    tbl.add_column("SEV", width=9)
    tbl.add_column("Host")
    tbl.add_column("Name")
    tbl.add_column("Status")
    tbl.add_column("Assignee")
    tbl.add_column("Overdue", justify="right")
    if notes is not None:
        tbl.add_column("Note")
    for f in findings[:limit] if limit else findings:
        sc = SEV_COLORS.get(f.severity.value, "")
        row = [f"[{sc}]{f.severity.value.upper()}[/{sc}]" if sc else f.severity.value,
               f.host, f.name, f.status, f.assignee or "-", str(f.days_overdue)]
        if notes is not None:
            row.append(notes.get(f.key, ""))
        tbl.add_row(*row)
    return tbl


@click.group()
def cli():
    """VulnTrack — vulnerability findings tracker CLI"""
    banner()


@cli.command("login")
@click.option("--username", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
def login(username, password):
    """Log in and store the bearer token."""
    from integrations.api_client import ApiClient
    try:
        ApiClient().login(username, password)
    except TrackerError as e:
        fail(e)
    console.print("[green]✔ Login successful. Token saved.[/green]\n")


@cli.command("logout")
def logout():
    """Forget the stored token."""
    from services.local_store import TokenStore
    TokenStore().clear()
    console.print("[green]✔ Logged out.[/green]\n")


@cli.command("findings")
@filter_options
@click.option("--limit", type=int, default=50, show_default=True)
def list_findings(limit, **filters):
    """List findings matching the filters."""
    service = load_service(**filters)
    findings = service.filtered()
    console.print(f"\n[bold]Findings ({len(findings)} of {len(service.state.findings)})"
                  f"[/bold]\n")
    console.print(findings_table(findings, limit, notes=service.notes.all()))


@cli.command("hosts")
@filter_options
@click.option("--limit", type=int, default=20, show_default=True)
def hosts(limit, **filters):
    """Findings grouped by host, most severe first."""
    service = load_service(**filters)
    tbl = Table(box=box.ROUNDED, header_style="bold cyan")
    for col in ("Host", "Total", "Critical", "High", "Medium", "Low",
                "Open", "Fixed", "Fix Rate"):
        tbl.add_column(col, justify="left" if col == "Host" else "right")
    for g in service.host_groups()[:limit]:
        tbl.add_row(g.key, str(g.total), str(g.critical), str(g.high), str(g.medium),
                    str(g.low), str(g.open_count), str(g.fixed_count), f"{g.fix_rate}%")
    console.print(tbl)


@cli.command("assignees")
@filter_options
@click.option("--sort", type=click.Choice(SORT_MODES), default="workload",
              show_default=True)
def assignees(sort, **filters):
    """Team workload grouped by assignee."""
    service = load_service(**filters)
    groups = service.assignee_groups(sort)
    summary = assignee_summary(groups)
    console.print(Panel(
        f"[bold]Assignees:[/bold] {summary.groups}  "
        f"[bold]Unassigned:[/bold] {summary.unassigned}  "
        f"[bold]Overdue:[/bold] [red]{summary.total_overdue}[/red]  "
        f"[bold]Avg. Completion:[/bold] {summary.average_rate}%",
        title="[bold blue]Team Workload[/bold blue]"
    ))
    tbl = Table(box=box.ROUNDED, header_style="bold cyan")
    for col in ("Assignee", "Total", "Open", "Closed", "Overdue", "Critical",
                "High", "Completion"):
        tbl.add_column(col, justify="left" if col == "Assignee" else "right")
    for g in groups:
        hc = HEALTH_COLORS[workload_health(g).value]
        tbl.add_row(f"[{hc}]{g.key}[/{hc}]", str(g.total), str(g.open_count),
                    str(g.fixed_count), str(g.overdue_count), str(g.critical),
                    str(g.high), f"{g.completion_rate}%")
    console.print(tbl)


@cli.command("owners")
@filter_options
@click.option("--sort", type=click.Choice(SORT_MODES), default="workload",
              show_default=True)
def owners(sort, **filters):
    """Business owner dashboard with risk ranking."""
    service = load_service(**filters)
    groups = service.owner_groups(sort)
    summary = owner_summary(groups)
    console.print(Panel(
        f"[bold]Owners:[/bold] {summary.groups}  "
        f"[bold]Unassigned findings:[/bold] {summary.unassigned}  "
        f"[bold]Fixed:[/bold] {summary.total_fixed}  "
        f"[bold]Fix Rate:[/bold] {summary.fix_rate}%",
        title="[bold blue]Business Owners[/bold blue]"
    ))
    tbl = Table(box=box.ROUNDED, header_style="bold cyan")
    for col in ("Owner", "Total", "Open", "Fixed", "Critical", "High", "Hosts",
                "Fix Rate", "Risk"):
        tbl.add_column(col, justify="left" if col == "Owner" else "right")
    for g in groups:
        tbl.add_row(g.key, str(g.total), str(g.open_count), str(g.fixed_count),
                    str(g.critical), str(g.high), str(len(g.hosts)),
                    f"{g.fix_rate}%", str(g.risk_score))
    console.print(tbl)

    risky = top_risky(groups)
    if risky:
        console.print("\n[bold]Top Risky Owners[/bold]")
        for i, g in enumerate(risky, 1):
            console.print(f"  [orange3]#{i}[/orange3] {g.key}  "
                          f"{g.critical}C, {g.high}H, {g.open_count} open  "
                          f"→ Risk Score: {g.risk_score}")
    best = most_improved(groups)
    if best:
        console.print(f"\n[bold]Most Improved:[/bold] [green]{best.key}[/green] "
                      f"({best.fix_rate}% fix rate)")
    console.print(f"[bold]Average Fix Rate:[/bold] {summary.average_rate}%\n")


@cli.command("sla")
@filter_options
@click.option("--only-severity", default="all", help="Narrow the attention list.")
@click.option("--only-status", default="open-only", show_default=True,
              help="open-only, all, or an exact status.")
@click.option("--host-contains", default=None)
@click.option("--only-assignee", default="all", help="Name, 'unassigned' or 'all'.")
def sla(only_severity, only_status, host_contains, only_assignee, **filters):
    """SLA and overdue tracker."""
    service = load_service(**filters)
    analyzer = service.sla()
    report = analyzer.report()
    console.print(Panel(
        f"[bold]SLA Breached:[/bold] [red]{report.breached}[/red] "
        f"({report.critical_breached} critical, {report.high_breached} high)\n"
        f"[bold]At Risk:[/bold] [orange3]{report.at_risk}[/orange3]\n"
        f"[bold]Compliance Rate:[/bold] {report.compliance_rate}%",
        title="[bold blue]SLA Tracker[/bold blue]"
    ))
    if report.top_breaching_assignees:
        console.print("[bold]Top Breaching Assignees[/bold]")
        for name, count in report.top_breaching_assignees:
            console.print(f"  {name}: [red]{count}[/red]")

    items = analyzer.attention_list(severity=only_severity, status=only_status,
                                    host=host_contains, assignee=only_assignee)
    console.print(f"\n[bold]{len(items)} Items Need Attention[/bold]\n")
    tbl = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan")
    for col in ("SEV", "Host", "Name", "Status", "Assignee", "Overdue", "SLA"):
        tbl.add_column(col, justify="right" if col == "Overdue" else "left")
    for f in items:
        state = classify_sla(f, service.sla_thresholds)
        sc = SEV_COLORS.get(f.severity.value, "white")
        lc = SLA_COLORS[state]
        tbl.add_row(f"[{sc}]{f.severity.value.upper()}[/{sc}]", f.host, f.name, f.status,
                    f.assignee or "-", str(f.days_overdue), f"[{lc}]{state.value}[/{lc}]")
    console.print(tbl)


@cli.command("analytics")
@filter_options
def analytics(**filters):
    """Distribution, top hosts and slide-ready metrics."""
    service = load_service(**filters)
    report = service.analytics()
    slide = report.slide
    console.print(Panel(
        f"[bold]Total:[/bold] {slide.total}  [bold]Open:[/bold] {slide.open}  "
        f"[bold]Critical:[/bold] [red]{slide.critical}[/red]  "
        f"[bold]Overdue:[/bold] {slide.overdue} ({report.critical_overdue} critical)\n"
        f"[bold]Risk Index:[/bold] {slide.risk_index}  "
        f"[bold]Compliance:[/bold] {slide.compliance_rate}%  "
        f"[bold]Closure:[/bold] {slide.closure_rate}%",
        title="[bold blue]Analytics[/bold blue]"
    ))
    tbl = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan", title="Severity")
    tbl.add_column("Severity")
    tbl.add_column("Count", justify="right")
    for sev, count in report.severity_counts.items():
        sc = SEV_COLORS.get(sev, "white")
        tbl.add_row(f"[{sc}]{sev}[/{sc}]", str(count))
    console.print(tbl)

    tbl = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan", title="Status")
    tbl.add_column("Status")
    tbl.add_column("Count", justify="right")
    for status, count in report.status_counts.items():
        tbl.add_row(status, str(count))
    console.print(tbl)

    tbl = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan", title="Top Hosts")
    for col in ("Host", "Total", "Critical", "High"):
        tbl.add_column(col, justify="left" if col == "Host" else "right")
    for h in report.top_hosts:
        tbl.add_row(h.host, str(h.total), str(h.critical), str(h.high))
    console.print(tbl)


@cli.command("trends")
@filter_options
@click.option("--period", type=click.Choice(["weekly", "ytd-weekly", "monthly"]),
              default="weekly", show_default=True)
def trends(period, **filters):
    """Open/closed trend buckets by first-observed date."""
    service = load_service(**filters)
    analyzer = service.trends()
    buckets = {
        "weekly": analyzer.weekly_trend,
        "ytd-weekly": analyzer.year_weekly_trend,
        "monthly": analyzer.monthly_trend,
    }[period]()
    tbl = Table(box=box.SIMPLE_HEAVY, header_style="bold cyan")
    for col in ("Period", "Total", "Open", "Closed", "Critical", "High", "Medium", "Low"):
        tbl.add_column(col, justify="left" if col == "Period" else "right")
    for b in buckets:
        tbl.add_row(b.label, str(b.total), str(b.open), str(b.closed),
                    str(b.critical), str(b.high), str(b.medium), str(b.low))
    console.print(tbl)


@cli.command("summary")
@click.option("--source", type=click.Choice([s.value for s in Source]),
              default=Source.INTERNAL.value, show_default=True)
def summary(source):
    """Headline counts as computed by the backend."""
    from services.findings_service import client_for
    try:
        s = client_for(source).get_summary()
    except TrackerError as e:
        fail(e)
    counts = "  ".join(f"[bold]{k.title()}:[/bold] {v}" for k, v in s.severity_counts.items())
    console.print(Panel(
        f"[bold]Total:[/bold] {s.total_vulnerabilities}  "
        f"[bold]Fixed:[/bold] {s.fixed_vulnerabilities}\n{counts}",
        title="[bold blue]Server Summary[/bold blue]"
    ))


ALL_STATUSES = sorted({s for source in Source for s in status_choices(source)})


@cli.command("update")
@filter_options
@click.option("--set-status", type=click.Choice(ALL_STATUSES, case_sensitive=False),
              default=None, help="Must belong to the source's status list.")
@click.option("--set-comment", default=None)
@click.option("--set-assignee", default=None)
@click.option("--yes", is_flag=True, default=False, help="Skip confirmation.")
def update(set_status, set_comment, set_assignee, yes, **filters):
    """Bulk-update status/comments/assignee of the filtered findings."""
    if set_status is None and set_comment is None and set_assignee is None:
        raise click.UsageError("Nothing to update: pass --set-status, --set-comment "
                               "or --set-assignee.")
    source = filters["source"]
    if set_status is not None and match_status(set_status, source) is None:
        raise click.BadParameter(
            f"'{set_status}' is not a {source} status. "
            f"Choose one of: {', '.join(status_choices(source))}",
            param_hint="--set-status",
        )
    if set_assignee is not None and source == Source.CLOUDFLARE.value:
        raise click.BadParameter("Cloudflare findings have no assignee.",
                                 param_hint="--set-assignee")
    service = load_service(**filters)
    targets = service.filtered()
    if not targets:
        console.print("[yellow]No findings match the filters.[/yellow]\n")
        return
    if not yes:
        click.confirm(f"Update {len(targets)} finding(s)?", abort=True)
    try:
        count = service.bulk_update(status=set_status, comments=set_comment,
                                    assignee=set_assignee)
    except TrackerError as e:
        fail(e)
    console.print(f"\n[green]✔ Updated {count} vulnerabilities.[/green]\n")


@cli.command("retest")
@filter_options
@click.option("--yes", is_flag=True, default=False, help="Skip confirmation.")
def retest(yes, **filters):
    """Retest the filtered findings one at a time."""
    service = load_service(**filters)
    targets = service.filtered()
    if not targets:
        console.print("[yellow]No findings match the filters.[/yellow]\n")
        return
    if not yes:
        click.confirm(f"Retest {len(targets)} finding(s)?", abort=True)

    with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console) as p:
        task = p.add_task(f"Retesting vulnerabilities... 0 of {len(targets)}", total=None)
        done = []

        def progress(result):
            done.append(result)
            p.update(task, description=f"Retesting vulnerabilities... "
                                       f"{len(done)} of {len(targets)}")

        results = service.bulk_retest(targets, on_result=progress)

    tbl = Table(box=box.ROUNDED, header_style="bold cyan", title="Retest Results")
    tbl.add_column("Host")
    tbl.add_column("Name")
    tbl.add_column("Result")
    tbl.add_column("Details")
    for r in results:
        if not r.success:
            label, detail = "[red]Failed[/red]", r.error or ""
        elif (r.status or "").lower() == "fixed":
            label, detail = "[green]Fixed[/green]", ""
        else:
            label, detail = "[yellow]Still Open[/yellow]", f"{r.findings_count or 0} finding(s)"
        tbl.add_row(r.host, r.name, label, detail)
    console.print(tbl)
    fixed = sum(1 for r in results if r.success and (r.status or "").lower() == "fixed")
    failed = sum(1 for r in results if not r.success)
    console.print(f"\nFixed: [green]{fixed}[/green]  Still open: "
                  f"[yellow]{len(results) - fixed - failed}[/yellow]  "
                  f"Failed: [red]{failed}[/red]\n")


@cli.command("export")
@filter_options
@click.option("--format", "fmt", type=click.Choice(["csv", "xlsx"]), default="csv",
              show_default=True)
@click.option("--fields", default=None, help="Comma-separated field names.")
@click.option("--title", default="vulnerabilities", show_default=True)
def export(fmt, fields, title, **filters):
    """Export the filtered findings to CSV or Excel."""
    from reporting.exporter import export_findings
    service = load_service(**filters)
    field_list = [f.strip() for f in fields.split(",") if f.strip()] if fields else None
    try:
        path = export_findings(service.filtered(), fmt=fmt,
                               source=filters["source"], fields=field_list, title=title)
    except TrackerError as e:
        fail(e)
    console.print(f"\n[green]✔ Exported:[/green] {path}\n")


@cli.command("report")
@filter_options
@click.option("--title", default="Vulnerability Report", show_default=True)
def report(title, **filters):
    """Generate a PDF summary of the filtered findings."""
    from reporting.pdf_report import PDFReportGenerator
    service = load_service(**filters)
    console.print("\n[bold]Generating PDF report...[/bold]")
    try:
        pdf_path = PDFReportGenerator(service.filtered(), title=title,
                                      sla_thresholds=service.sla_thresholds).generate()
        console.print(f"\n[green]✔ Report saved:[/green] {pdf_path}\n")
    except Exception as e:
        logger.error(f"PDF generation failed: {e}")
        console.print(f"\n[red]✘ PDF generation failed:[/red] {e}\n")


@cli.command("note")
@click.argument("action", type=click.Choice(["add", "show", "remove"]))
@click.option("--host", required=True)
@click.option("--name", required=True)
@click.option("--text", default="")
def note(action, host, name, text):
    """Keep a local note against a finding."""
    from services.local_store import NotesStore
    store = NotesStore()
    key = f"{host}-{name}"
    if action == "add":
        store.add(key, text)
        console.print(f"[green]✔ Note saved for {key}[/green]")
    elif action == "remove":
        store.remove(key)
        console.print(f"[green]✔ Note removed for {key}[/green]")
    else:
        console.print(store.get(key) or "[dim](no note)[/dim]")


@cli.command("status")
def check_status():
    """Check configuration and local state."""
    from services.local_store import TokenStore
    tbl = Table(box=box.ROUNDED, header_style="bold cyan")
    tbl.add_column("Component", style="bold")
    tbl.add_column("Status")
    tbl.add_column("Details")

    if settings.MOCK_MODE:
        tbl.add_row("Backend", "[yellow]MOCK[/yellow]", "Simulation mode active")
    else:
        tbl.add_row("Backend", "[green]CONFIGURED[/green]", settings.API_BASE_URL)

    token = TokenStore().load()
    tbl.add_row("Session", "[green]LOGGED IN[/green]" if token else "[yellow]NO TOKEN[/yellow]",
                str(settings.token_path()))
    tbl.add_row("Report Output", "[green]OK[/green]", str(settings.REPORT_OUTPUT_DIR))
    tbl.add_row("SLA Thresholds", "",
                ", ".join(f"{k}={v}d" for k, v in settings.SLA_THRESHOLDS.items()))
    tbl.add_row("HTTP Retries", "", str(settings.HTTP_RETRY_ATTEMPTS))
    console.print(tbl)
    console.print()
