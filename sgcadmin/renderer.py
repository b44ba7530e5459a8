"""
Terminal rendering for the admin console.

Tables come from the resource descriptors' column lists; banners, stats,
settings, promotion candidates and performance figures each get a small
dedicated view, as does the dashboard summary.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel
from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from sgcadmin.banners import BannerState
from sgcadmin.config import AdminConfig
from sgcadmin.ids import populated_name, resolve_id
from sgcadmin.resources import ResourceDescriptor
from sgcadmin.session import SessionContext


STATUS_STYLES = {
    "active": "green",
    "published": "green",
    "sent": "green",
    "enrolled": "green",
    "healthy": "green",
    "draft": "yellow",
    "scheduled": "yellow",
    "pending": "yellow",
    "degraded": "yellow",
    "inactive": "red",
    "failed": "red",
    "rejected": "red",
    "unhealthy": "red",
}


def status_chip(active: bool) -> str:
    return "[green]Active[/green]" if active else "[red]Inactive[/red]"


def format_cell(attribute: str, value: Any) -> str:
    """One table cell; flags become chips, refs become names"""
    if value is None or value == "":
        return "[dim]-[/dim]"
    if isinstance(value, bool):
        if attribute == "is_active":
            return status_chip(value)
        return "Yes" if value else "No"
    if isinstance(value, float):
        return f"{value:.2f}".rstrip("0").rstrip(".")
    if isinstance(value, dict):
        return populated_name(value) or resolve_id(value) or "[dim]-[/dim]"
    text = str(value)
    style = STATUS_STYLES.get(text.lower()) if attribute == "status" else None
    return f"[{style}]{text}[/{style}]" if style else text


class AdminRenderer:
    """Renders pages and outcomes with rich"""

    def __init__(self, console: Console, config: Optional[AdminConfig] = None):
        self.console = console
        self.config = config or AdminConfig()

    # ==================== Messages ====================

    def render_error(self, message: str, details: Optional[str] = None):
        error_panel = Panel(
            f"[bold red]{message}[/bold red]" +
            (f"\n\n[dim]{details}[/dim]" if details else ""),
            title="[red]Error[/red]",
            border_style="red"
        )
        self.console.print(error_panel)

    def render_warning(self, message: str):
        self.console.print(f"[yellow]! {message}[/yellow]")

    def render_success(self, message: str):
        self.console.print(f"[green]✓ {message}[/green]")

    def render_info(self, message: str):
        self.console.print(f"[blue]{message}[/blue]")

    def render_banner(self, banners: BannerState) -> None:
        """Show whatever banner is current"""
        banner = banners.current
        if banner is None:
            return
        if banner.level == "success":
            self.render_success(banner.text)
        else:
            self.render_error(banner.text)

    def status(self, message: str = "Loading..."):
        """Spinner context manager shown while requests are in flight"""
        return self.console.status(f"[bold cyan]{message}[/bold cyan]", spinner="dots")

    def render_section_header(self, title: str):
        self.console.print()
        self.console.print(Rule(f"[bold cyan]{title}[/bold cyan]", style="cyan"))

    # ==================== Lists & records ====================

    def build_table(self, descriptor: ResourceDescriptor, items: Sequence[Any],
                    title: Optional[str] = None) -> Table:
        table = Table(title=title or descriptor.label.title(), show_header=True,
                      header_style="bold cyan", box=ROUNDED)
        table.add_column("ID", style="dim", no_wrap=True)
        for header, _ in descriptor.columns:
            table.add_column(header)
        for item in items:
            row = [getattr(item, "id", "") or ""]
            row.extend(format_cell(attribute, getattr(item, attribute, None))
                       for _, attribute in descriptor.columns)
            table.add_row(*row)
        return table

    def render_list(self, descriptor: ResourceDescriptor, items: Sequence[Any], page: int = 0,
                    page_count: int = 1, total: Optional[int] = None) -> None:
        if not items:
            self.console.print(f"[dim]No {descriptor.label} found[/dim]")
            return
        self.console.print(self.build_table(descriptor, items))
        count = total if total is not None else len(items)
        self.console.print(f"[dim]Page {page + 1} of {max(page_count, 1)} · {count} total[/dim]")

    def render_record(self, record: Any, title: Optional[str] = None) -> None:
        data = record.model_dump(by_alias=True, exclude_none=True) if isinstance(record, BaseModel) else dict(record)
        table = Table(title=title, show_header=False, box=ROUNDED)
        table.add_column("Field", style="green")
        table.add_column("Value")
        for key, value in data.items():
            if isinstance(value, dict) and not populated_name(value):
                value = ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
            table.add_row(key, format_cell(key, value))
        self.console.print(table)

    def render_options(self, options: Iterable[Any], title: str) -> None:
        """Numbered choice list (institution selection and similar)"""
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Name")
        table.add_column("ID", style="dim")
        for index, option in enumerate(options, start=1):
            name = getattr(option, "name", None) or populated_name(option) or "-"
            table.add_row(str(index), name, resolve_id(option))
        self.console.print(table)

    # ==================== Session ====================

    def render_session(self, session: SessionContext) -> None:
        if not session.is_authenticated():
            self.console.print("[yellow]Not logged in[/yellow]")
            return
        user = session.user
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Label", style="dim")
        table.add_column("Value")
        table.add_row("Name", str(user.get("name", "-")))
        table.add_row("Email", str(user.get("email", "-")))
        table.add_row("Role", str(user.get("role", "-")))
        table.add_row("Institution", session.current_institution_id() or "[dim]none[/dim]")
        self.console.print(table)

    # ==================== Page specific ====================

    def render_stats(self, stats: Dict[str, Any], title: str = "Overview") -> None:
        if not stats:
            self.console.print("[dim]No statistics available[/dim]")
            return
        table = Table(title=title, show_header=False, box=None, padding=(0, 2))
        table.add_column("Metric", style="dim")
        table.add_column("Value", justify="right")
        for key, value in stats.items():
            if isinstance(value, (dict, list)):
                continue
            table.add_row(key, f"[cyan]{format_cell(key, value)}[/cyan]")
        self.console.print(table)

    def render_settings(self, categories: Dict[str, List[Any]]) -> None:
        if not categories:
            self.console.print("[dim]No settings found[/dim]")
            return
        for category, settings in categories.items():
            table = Table(title=category.title(), show_header=True, header_style="bold cyan", box=ROUNDED)
            table.add_column("Key", style="green")
            table.add_column("Value")
            table.add_column("Type", style="dim")
            table.add_column("Editable")
            for setting in settings:
                table.add_row(setting.key, format_cell("value", setting.value), setting.data_type,
                              format_cell("is_editable", setting.is_editable))
            self.console.print(table)

    def render_candidates(self, candidates: Sequence[Any], selected: Sequence[str]) -> None:
        if not candidates:
            self.console.print("[dim]No enrolled students found[/dim]")
            return
        table = Table(title="Students", show_header=True, header_style="bold cyan", box=ROUNDED)
        table.add_column("", width=3)
        for header in ("Student ID", "Roll No", "Name", "Father Name", "Category", "Gender", "Admission"):
            table.add_column(header)
        for candidate in candidates:
            mark = "[green]●[/green]" if candidate.id in selected else "[dim]○[/dim]"
            table.add_row(mark, candidate.student_id, candidate.roll_number or "-", candidate.name,
                          candidate.father_name or "-", candidate.category, candidate.gender, candidate.id)
        self.console.print(table)
        self.console.print(f"[dim]{len(selected)} of {len(candidates)} selected[/dim]")

    def render_report(self, report: Any) -> None:
        self.render_stats(report.summary, title="Report Summary")
        rows = report.data
        if not rows:
            return
        headers = list(rows[0].keys())
        table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*(format_cell(h, row.get(h)) for h in headers))
        self.console.print(table)

    def render_performance(self, snapshot: Any) -> None:
        health = snapshot.system_health
        style = STATUS_STYLES.get(snapshot.health_status.lower(), "white")
        lines = [f"Status: [{style}]{snapshot.health_status}[/{style}]"]
        for key in ("uptime", "memory", "cpu"):
            if key in health:
                lines.append(f"{key.title()}: {format_cell(key, health[key])}")
        self.console.print(Panel("\n".join(lines), title="[bold]System Health[/bold]",
                                 border_style=style, box=ROUNDED))
        self.render_stats(snapshot.database_stats, title="Database")
        self.render_stats(snapshot.error_rates, title="Errors (24h)")
        self.console.print(f"[dim]Active sessions: {len(snapshot.active_sessions)} · "
                           f"metric samples: {len(snapshot.metrics)}[/dim]")
        if snapshot.fetched_at:
            self.console.print(f"[dim]Updated {snapshot.fetched_at:%H:%M:%S} UTC[/dim]")

    def render_dashboard(self, summary: Any) -> None:
        self.render_stats(summary.figures(), title="Dashboard")
        if summary.upcoming_events:
            table = Table(title="Upcoming Events", show_header=True, header_style="bold cyan", box=ROUNDED)
            table.add_column("Title", style="green")
            table.add_column("Type")
            table.add_column("Starts")
            for event in summary.upcoming_events:
                table.add_row(str(event.get("title") or "-"), str(event.get("type") or event.get("eventType") or "-"),
                              str(event.get("startDate") or "")[:10])
            self.console.print(table)
        if summary.recent_institutions:
            names = ", ".join(str(i.get("name") or resolve_id(i)) for i in summary.recent_institutions)
            self.console.print(f"[dim]Recently added: {names}[/dim]")
