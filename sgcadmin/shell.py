"""
Interactive shell - the same commands as the command line, with history
and completion.
"""

from pathlib import Path
from typing import TYPE_CHECKING, List

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style

from sgcadmin import __version__
from sgcadmin.logging_config import get_logger
from sgcadmin.resources import REGISTRY

if TYPE_CHECKING:
    from sgcadmin.main import AdminApp


logger = get_logger(__name__)


COMMANDS = [
    "login", "logout", "status", "whoami", "dashboard", "switch-institution", "list", "show",
    "create", "edit", "toggle", "delete", "publish", "send", "generate", "stats",
    "settings", "promote", "performance", "help", "clear", "quit", "exit",
]
OPTIONS = ["--filter", "--search", "--page", "--page-size", "--set", "--yes", "--from", "--to",
           "--student", "--all", "--type", "--watch", "--help"]

PT_STYLE = Style.from_dict({
    'prompt': '#00D9FF bold',
    'institution': '#4ADE80',
})


def completion_words() -> List[str]:
    return COMMANDS + sorted(REGISTRY) + OPTIONS


class AdminShell:
    """prompt-toolkit REPL over an AdminApp"""

    def __init__(self, app: "AdminApp"):
        self.app = app
        self.console = app.console
        history_file = Path(app.config.history_file)
        history_file.parent.mkdir(parents=True, exist_ok=True)
        self.session = PromptSession(
            history=FileHistory(str(history_file)),
            auto_suggest=AutoSuggestFromHistory(),
            completer=WordCompleter(completion_words(), ignore_case=True),
            style=PT_STYLE,
            enable_history_search=True,
        )

    def _prompt_text(self) -> HTML:
        institution = self.app.session.current_institution_id() if self.app.session.is_authenticated() else ""
        if institution:
            return HTML(f'<prompt>sgc</prompt> <institution>[{institution[-6:]}]</institution> <prompt>❯</prompt> ')
        return HTML('<prompt>sgc ❯</prompt> ')

    def _print_welcome(self) -> None:
        self.console.print(f"[bold cyan]SGC Admin[/bold cyan] [dim]v{__version__}[/dim]")
        self.console.print("[dim]Type help for commands, quit to exit[/dim]\n")
        self.app.renderer.render_session(self.app.session)

    async def run(self) -> None:
        self._print_welcome()
        while True:
            try:
                line = await self.session.prompt_async(self._prompt_text())
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue
            if line in ("quit", "exit", "q"):
                break
            if line == "clear":
                self.console.clear()
                continue
            if line == "help":
                line = "--help"

            try:
                await self.app.run_line(line)
            except KeyboardInterrupt:
                self.console.print("\n[dim]Cancelled[/dim]")
            except Exception as e:
                # Full traceback goes to the log file
                logger.log_error_with_context(e, context=line.split()[0])
                self.app.renderer.render_error(f"Error: {e}")
            self.console.print()

        self.console.print("\n[dim]Goodbye![/dim]")
