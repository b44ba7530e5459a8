#!/usr/bin/env python3
"""
SGC Admin - Main Entry Point

Usage:
    sgcadmin login                          # Login (super admins pick an institution)
    sgcadmin list users --filter role=teacher
    sgcadmin create classes --set name="Grade 5" --set code=G5
    sgcadmin toggle institutions 64f...     # Activate / deactivate
    sgcadmin shell                          # Interactive mode
    sgcadmin --help                         # Show help
"""

import argparse
import asyncio
import shlex
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx
from rich.console import Console
from rich.prompt import Confirm, Prompt

from sgcadmin import __version__
from sgcadmin.api_client import ApiClient
from sgcadmin.auth import AuthManager
from sgcadmin.config import REFRESH_INTERVALS, AdminConfig
from sgcadmin.exceptions import ErrorKind, LocalValidationError, SGCAdminError
from sgcadmin.logging_config import get_logger, setup_logging
from sgcadmin.pages import (
    LIST_PAGES,
    DashboardPage,
    MessagesPage,
    PerformancePage,
    PromotionsPage,
    ReportsPage,
    ResultsPage,
    SettingsPage,
    page_for,
)
from sgcadmin.renderer import AdminRenderer
from sgcadmin.resources import RESULTS, get_descriptor
from sgcadmin.session import FileStorage, SessionContext, SessionStorage


logger = get_logger(__name__)

SESSION_EXPIRED = "Your session has expired. Please log in again: sgcadmin login"


class UsageError(Exception):
    """Bad command line input, reported without a traceback"""


def parse_pairs(pairs: Optional[Sequence[str]]) -> Dict[str, str]:
    """['role=teacher', 'institution=abc'] -> {'role': 'teacher', 'institution': 'abc'}"""
    values: Dict[str, str] = {}
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise UsageError(f"Expected key=value, got '{pair}'")
        values[key.strip()] = value
    return values


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="sgcadmin",
        description="SGC Admin - school and college administration console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sgcadmin login                                   Login to your account
  sgcadmin status                                  Show who is logged in
  sgcadmin dashboard                               Institution and user summary
  sgcadmin switch-institution 64f0c...             Super admins: change institution
  sgcadmin list results --filter status=draft      List draft results
  sgcadmin list users --search ali --page 2        Search users, second page
  sgcadmin create sections --set class=64f... --set name=A
  sgcadmin edit users 64f... --set phone=0300...   Edit a record
  sgcadmin promote --type promote --from institution=I class=C section=S \\
                   --to institution=I class=C2 section=S2 --all
  sgcadmin performance --watch 10                  Live system health

Field values given with --set are applied in order, so choose a parent
(institution, class) before its dependants (section, student).
        """
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr as well")
    parser.add_argument("--config", type=str, help="Path to config file")
    parser.add_argument("--api-url", type=str, help="Backend origin (default: http://localhost:5000)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    login_parser = subparsers.add_parser("login", help="Login to SGC Admin")
    login_parser.add_argument("--email", "-e", help="Account email")
    login_parser.add_argument("--password", "-p", help="Password (prompted when omitted)")
    login_parser.add_argument("--institution", "-i", help="Institution id (super admins)")

    subparsers.add_parser("logout", help="Logout and clear the stored session")
    subparsers.add_parser("status", help="Show authentication status")
    subparsers.add_parser("whoami", help="Show current user info")
    subparsers.add_parser("dashboard", help="Summary counts for the selected institution")

    switch_parser = subparsers.add_parser("switch-institution", help="Change the selected institution")
    switch_parser.add_argument("institution", nargs="?", help="Institution id (prompted when omitted)")

    list_parser = subparsers.add_parser("list", help="List a resource")
    list_parser.add_argument("resource", help=f"One of: {', '.join(sorted(LIST_PAGES))}")
    list_parser.add_argument("--filter", "-f", action="append", metavar="KEY=VALUE", help="Filter (repeatable)")
    list_parser.add_argument("--search", "-s", help="Search text")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_parser.add_argument("--page-size", type=int, help="Rows per page")

    show_parser = subparsers.add_parser("show", help="Show one record")
    show_parser.add_argument("resource")
    show_parser.add_argument("id")

    create_parser_ = subparsers.add_parser("create", help="Create a record")
    create_parser_.add_argument("resource")
    create_parser_.add_argument("--set", action="append", dest="values", metavar="FIELD=VALUE",
                                help="Field value (repeatable, applied in order)")

    edit_parser = subparsers.add_parser("edit", help="Edit a record")
    edit_parser.add_argument("resource")
    edit_parser.add_argument("id")
    edit_parser.add_argument("--set", action="append", dest="values", metavar="FIELD=VALUE")

    toggle_parser = subparsers.add_parser("toggle", help="Activate or deactivate a record")
    toggle_parser.add_argument("resource")
    toggle_parser.add_argument("id")

    delete_parser = subparsers.add_parser("delete", help="Delete a record")
    delete_parser.add_argument("resource")
    delete_parser.add_argument("id")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    publish_parser = subparsers.add_parser("publish", help="Publish a result")
    publish_parser.add_argument("id")

    send_parser = subparsers.add_parser("send", help="Send a message")
    send_parser.add_argument("id")
    send_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    generate_parser = subparsers.add_parser("generate", help="Generate a report")
    generate_parser.add_argument("id")

    stats_parser = subparsers.add_parser("stats", help="Result statistics overview")
    stats_parser.add_argument("--filter", "-f", action="append", metavar="KEY=VALUE")

    settings_parser = subparsers.add_parser("settings", help="Show or change system settings")
    settings_parser.add_argument("action", nargs="?", choices=["show", "set", "save"], default="show")
    settings_parser.add_argument("key", nargs="?")
    settings_parser.add_argument("value", nargs="?")

    promote_parser = subparsers.add_parser("promote", help="Promote, transfer or pass out students")
    promote_parser.add_argument("--type", "-t", dest="promotion_type", default="promote",
                                choices=["promote", "transfer", "passout"])
    promote_parser.add_argument("--from", dest="origin", nargs="+", metavar="KEY=VALUE", default=[],
                                help="institution=, class=, section=, group=")
    promote_parser.add_argument("--to", dest="destination", nargs="+", metavar="KEY=VALUE", default=[],
                                help="institution=, class=, section=, group=, academicYear=")
    promote_parser.add_argument("--student", action="append", default=[], help="Admission id (repeatable)")
    promote_parser.add_argument("--all", action="store_true", help="Select every loaded student")
    promote_parser.add_argument("--remarks", default="")
    promote_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    performance_parser = subparsers.add_parser("performance", help="System health and metrics")
    performance_parser.add_argument("--watch", type=int, default=0, choices=REFRESH_INTERVALS,
                                    help="Refresh every N seconds (0 = once)")

    subparsers.add_parser("shell", help="Start interactive mode")

    return parser


class AdminApp:
    """Runs parsed commands against one API client and session"""

    def __init__(self, config: AdminConfig, console: Console,
                 storage: Optional[SessionStorage] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 interactive: bool = True,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.config = config
        self.console = console
        self.interactive = interactive
        self.sleep = sleep
        self.session = SessionContext(storage or FileStorage(config.storage_file))
        self.api = ApiClient.from_config(config, self.session, transport=transport)
        self.auth = AuthManager(self.api, self.session)
        self.renderer = AdminRenderer(console, config)

    async def aclose(self) -> None:
        await self.api.aclose()

    # ==================== Helpers ====================

    def confirm(self, question: str) -> bool:
        if not self.interactive:
            return False
        return Confirm.ask(question, console=self.console, default=False)

    def _expired(self) -> int:
        """Unauthorized anywhere: forget the session and ask for a new login"""
        self.session.clear()
        self.renderer.render_warning(SESSION_EXPIRED)
        return 1

    def _banner(self, page: Any) -> int:
        """Print the page banner; exit code 1 when it is an error"""
        if getattr(page, "unauthorized", False):
            return self._expired()
        banner = page.banners.current
        self.renderer.render_banner(page.banners)
        return 1 if banner is not None and banner.level == "error" else 0

    def _require_login(self) -> bool:
        if self.session.is_authenticated():
            return True
        self.console.print("\n[red]✗ Authentication required[/red]")
        self.console.print("\nPlease login first:")
        self.console.print("  [cyan]sgcadmin login[/cyan]")
        return False

    # ==================== Dispatch ====================

    async def run(self, args: argparse.Namespace) -> int:
        command = (args.command or "status").replace("-", "_")
        handler = getattr(self, f"cmd_{command}", None)
        if handler is None:
            raise UsageError(f"Unknown command '{args.command}'")
        if command not in ("login", "logout", "status", "whoami", "shell") and not self._require_login():
            return 1
        try:
            return await handler(args)
        except LocalValidationError as e:
            self.renderer.render_error(e.message)
            return 1
        except SGCAdminError as e:
            if e.kind == ErrorKind.UNAUTHORIZED:
                return self._expired()
            self.renderer.render_error(e.message or "Request failed")
            return 1
        except (KeyError, ValueError) as e:
            raise UsageError(str(e).strip("'\"")) from e

    # ==================== Session commands ====================

    async def cmd_login(self, args: argparse.Namespace) -> int:
        email = args.email or Prompt.ask("Email", console=self.console)
        password = args.password or Prompt.ask("Password", password=True, console=self.console)

        try:
            with self.renderer.status("Signing in..."):
                result = await self.auth.login(email, password)
        except LocalValidationError as e:
            self.renderer.render_error(e.message)
            return 1
        except SGCAdminError as e:
            self.console.print("\n[red]✗ Login failed[/red]")
            self.renderer.render_error(e.message)
            return 1

        if result.needs_institution:
            pending = result.pending
            choice = args.institution
            if not choice:
                self.renderer.render_options(pending.institutions, "Select Institution")
                number = Prompt.ask(
                    "Institution",
                    choices=[str(i) for i in range(1, len(pending.institutions) + 1)],
                    console=self.console,
                )
                choice = pending.institutions[int(number) - 1].id
            self.auth.complete_login(pending, choice)

        self.console.print("\n[green]✓ Login successful![/green]")
        self.console.print(f"Welcome, [bold]{self.session.user.get('name', email)}[/bold]!")
        return 0

    async def cmd_logout(self, args: argparse.Namespace) -> int:
        self.auth.logout()
        self.console.print("[green]✓ Logged out[/green]")
        return 0

    async def cmd_status(self, args: argparse.Namespace) -> int:
        self.renderer.render_session(self.session)
        return 0

    cmd_whoami = cmd_status

    async def cmd_switch_institution(self, args: argparse.Namespace) -> int:
        choice = args.institution
        if not choice:
            institutions = await self.auth.available_institutions()
            if not institutions:
                self.renderer.render_warning("No institutions found")
                return 1
            self.renderer.render_options(institutions, "Select Institution")
            number = Prompt.ask("Institution", choices=[str(i) for i in range(1, len(institutions) + 1)],
                                console=self.console)
            choice = institutions[int(number) - 1].id
        institution = await self.auth.switch_institution(choice)
        self.renderer.render_success(f"Switched to {institution.name}")
        return 0

    async def cmd_dashboard(self, args: argparse.Namespace) -> int:
        page = DashboardPage(self.api, self.session, self.config)
        with self.renderer.status("Loading dashboard..."):
            summary = await page.open()
        page.close()
        if summary is None:
            return self._banner(page)
        self.renderer.render_dashboard(summary)
        return 0

    # ==================== Resource commands ====================

    def _page(self, resource: str, cls: Optional[type] = None):
        return (cls or page_for(resource))(self.api, self.session, self.config)

    async def cmd_list(self, args: argparse.Namespace) -> int:
        page = self._page(args.resource)
        filters: Dict[str, Any] = parse_pairs(args.filter)
        if args.search:
            filters["search"] = args.search
        controller = page.controller
        # Query is fully set up before the first fetch so only one request goes out
        controller.update_filters(**filters)
        if args.page_size:
            controller.query.set_page_size(args.page_size)
        controller.query.set_page(max(args.page - 1, 0))
        with self.renderer.status(f"Loading {page.descriptor.label}..."):
            await page.open()
        page.close()
        if controller.error:
            return self._banner(page)
        self.renderer.render_list(page.descriptor, page.items, page=controller.query.page,
                                  page_count=controller.page_count, total=controller.total)
        return 0

    async def cmd_show(self, args: argparse.Namespace) -> int:
        descriptor = get_descriptor(args.resource)
        response = await self.api.get(descriptor.item_path(args.id))
        record = descriptor.model.model_validate(response.data or {})
        self.renderer.render_record(record, title=descriptor.singular.title())
        return 0

    async def _submit_form(self, resource: str, record_id: Optional[str], values: Dict[str, str]) -> int:
        page = self._page(resource)
        form = page.new_form(record_id)
        if record_id:
            await form.load_existing(self.api)
        else:
            await form.sync()
        for name, value in values.items():
            await form.choose(name, value)
        with self.renderer.status("Saving..."):
            await page.submit(form)
        page.close()
        return self._banner(page)

    async def cmd_create(self, args: argparse.Namespace) -> int:
        return await self._submit_form(args.resource, None, parse_pairs(args.values))

    async def cmd_edit(self, args: argparse.Namespace) -> int:
        return await self._submit_form(args.resource, args.id, parse_pairs(args.values))

    async def cmd_toggle(self, args: argparse.Namespace) -> int:
        page = self._page(args.resource)
        await page.toggle(args.id)
        page.close()
        return self._banner(page)

    async def cmd_delete(self, args: argparse.Namespace) -> int:
        page = self._page(args.resource)
        confirm = (lambda _: True) if args.yes else self.confirm
        result = await page.delete(args.id, confirm)
        page.close()
        if result is None:
            self.console.print("[dim]Cancelled[/dim]")
            return 0
        return self._banner(page)

    async def cmd_publish(self, args: argparse.Namespace) -> int:
        page = self._page(RESULTS.name, ResultsPage)
        await page.publish(args.id)
        page.close()
        return self._banner(page)

    async def cmd_send(self, args: argparse.Namespace) -> int:
        page = self._page("messages", MessagesPage)
        result = await page.send(args.id, confirm=None if args.yes else self.confirm)
        page.close()
        if result is None:
            self.console.print("[dim]Cancelled[/dim]")
            return 0
        return self._banner(page)

    async def cmd_generate(self, args: argparse.Namespace) -> int:
        page = self._page("reports", ReportsPage)
        with self.renderer.status("Generating report..."):
            report = await page.generate(args.id)
        page.close()
        if report is None:
            return self._banner(page)
        self.renderer.render_report(report)
        return 0

    async def cmd_stats(self, args: argparse.Namespace) -> int:
        page = self._page(RESULTS.name, ResultsPage)
        page.controller.update_filters(**parse_pairs(args.filter))
        stats = await page.load_stats()
        page.close()
        self.renderer.render_stats(stats, title="Results Overview")
        return 0

    async def cmd_settings(self, args: argparse.Namespace) -> int:
        page = SettingsPage(self.api, self.session, self.config)
        await page.open()
        if page.unauthorized:
            return self._expired()
        if args.action == "show":
            self.renderer.render_banner(page.banners)
            self.renderer.render_settings(page.categories)
            return 0
        if args.action == "set":
            if not args.key or args.value is None:
                raise UsageError("settings set needs KEY and VALUE")
            await page.update(args.key, args.value)
        else:
            await page.save()
        return self._banner(page)

    async def cmd_promote(self, args: argparse.Namespace) -> int:
        page = self._page("student-promotions", PromotionsPage)
        form = page.form
        form.set("promotionType", args.promotion_type)
        for side, pairs in (("from", args.origin), ("to", args.destination)):
            for key, value in parse_pairs(pairs).items():
                await form.choose(f"{side}.{key}", value)
        form.set("remarks", args.remarks)

        with self.renderer.status("Loading students..."):
            loaded = await page.fetch_students()
        if not loaded:
            page.close()
            return self._banner(page)

        if args.all:
            form.select_all()
        for student in args.student:
            form.toggle_student(student)
        self.renderer.render_candidates(form.candidates, form.selected)

        if form.selected and not args.yes:
            if not self.confirm(f"{form.action_label} {len(form.selected)} student(s)?"):
                page.close()
                self.console.print("[dim]Cancelled[/dim]")
                return 0
        outcome = await page.run()
        page.close()
        if outcome.ok:
            self.renderer.render_success(outcome.message)
            return 0
        return self._banner(page)

    def _show_performance(self, page: PerformancePage) -> None:
        self.console.clear()
        self.renderer.render_banner(page.banners)
        if page.snapshot is not None:
            self.renderer.render_performance(page.snapshot)

    async def cmd_performance(self, args: argparse.Namespace) -> int:
        page = PerformancePage(self.api, self.session, self.config, sleep=self.sleep)
        try:
            await page.refresh()
            if page.unauthorized:
                return self._expired()
            if page.snapshot is None:
                return self._banner(page)
            self.renderer.render_performance(page.snapshot)
            if not args.watch:
                return 0

            expired = asyncio.Event()

            def redraw(current: PerformancePage) -> None:
                if current.unauthorized:
                    expired.set()
                    return
                self._show_performance(current)
                self.console.print(f"[dim]Refreshing every {args.watch}s, Ctrl+C to stop[/dim]")

            page.on_refresh = redraw
            page.set_refresh_interval(args.watch)
            self.console.print(f"[dim]Refreshing every {args.watch}s, Ctrl+C to stop[/dim]")
            # Runs until Ctrl+C or the session expires
            await expired.wait()
            return self._expired()
        finally:
            page.close()

    async def cmd_shell(self, args: argparse.Namespace) -> int:
        from sgcadmin.shell import AdminShell

        shell = AdminShell(self)
        await shell.run()
        return 0

    async def run_line(self, line: str) -> int:
        """Run one shell line as if it were a command line"""
        parser = create_parser()
        try:
            args = parser.parse_args(shlex.split(line))
        except SystemExit as e:
            # argparse already printed usage or help
            return int(e.code or 0)
        if args.command == "shell":
            self.renderer.render_warning("Already in the shell")
            return 1
        try:
            return await self.run(args)
        except UsageError as e:
            self.renderer.render_error(str(e))
            return 2


def build_config(args: argparse.Namespace) -> AdminConfig:
    config = AdminConfig.load_default()
    if args.config:
        config.load_from_file(args.config)
    if args.api_url:
        config.api_origin = args.api_url
    if args.verbose:
        config.verbose = True
    return config


async def _run(config: AdminConfig, args: argparse.Namespace, console: Console) -> int:
    app = AdminApp(config, console)
    try:
        return await app.run(args)
    finally:
        await app.aclose()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)
    console = Console()

    try:
        config = build_config(args)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        sys.exit(2)
    setup_logging(config)

    try:
        code = asyncio.run(_run(config, args, console))
    except KeyboardInterrupt:
        console.print("\n\nGoodbye!")
        sys.exit(0)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    sys.exit(code)


if __name__ == "__main__":
    main()
