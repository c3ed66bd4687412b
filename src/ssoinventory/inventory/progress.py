"""Progress reporting for inventory runs.

The engine and the retry governor publish events to a :class:`ProgressListener`.
:class:`RichProgressReporter` renders them as two progress bars (work units and
accounts) above a short feed of recent activity. Rendering has no effect on the
inventory itself.
"""

from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING, Deque, Dict, Optional, Sequence

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn, TimeRemainingColumn
from rich.text import Text

from .models import Account, UnitFailure

if TYPE_CHECKING:
    from .engine import UnitCompleted
    from .retry import RetryEvent

DEFAULT_MAX_LOG_LINES = 10
ACCOUNT_NAME_WIDTH = 50
PERMISSION_SET_NAME_WIDTH = 30


def shorten(value: str, width: int) -> str:
    """Truncate ``value`` to ``width`` characters, marking the cut with an ellipsis."""
    if len(value) <= width:
        return value
    return value[: width - 3] + "..."


class ProgressListener:
    """Receives inventory events. The base implementation ignores them."""

    # True when retry events are shown to the user, so they need not be logged as warnings
    reports_retries = False

    def on_run_started(self, accounts: Sequence[Account], permission_set_count: int) -> None:
        pass

    def on_unit_completed(self, event: "UnitCompleted") -> None:
        pass

    def on_unit_failed(self, failure: UnitFailure) -> None:
        pass

    def on_retry(self, event: "RetryEvent") -> None:
        pass

    def on_run_finished(self, assignment_count: int) -> None:
        pass

    def on_run_aborted(self) -> None:
        pass


class NullProgressListener(ProgressListener):
    """Listener used when progress output is disabled."""


class RichProgressReporter(ProgressListener):
    """Live terminal display of inventory progress."""

    reports_retries = True

    def __init__(self, console: Console, max_log_lines: int = DEFAULT_MAX_LOG_LINES):
        """Initialize the reporter.

        Args:
            console: Rich console for output
            max_log_lines: Number of recent activity lines kept on screen
        """
        self.console = console
        self.max_log_lines = max_log_lines
        self.progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TimeRemainingColumn(),
            console=console,
        )
        self.overall_task: Optional[TaskID] = None
        self.account_task: Optional[TaskID] = None
        self.live: Optional[Live] = None
        self.messages: Deque[Text] = deque(maxlen=max_log_lines)

        self._account_names: Dict[str, str] = {}
        self._remaining_by_account: Dict[str, int] = {}

    def add_log(self, message: str, style: str = "dim") -> None:
        """Append a line to the recent activity feed."""
        timestamp = datetime.now().strftime("%H:%M:%S")
        icon = {"green": "✓", "yellow": "⚠", "red": "✗"}.get(style, "•")
        self.messages.append(Text(f"[{timestamp}] {icon} {message}", style=style))
        self._refresh()

    def on_run_started(self, accounts: Sequence[Account], permission_set_count: int) -> None:
        self._account_names = {account.id: account.name for account in accounts}
        self._remaining_by_account = {account.id: permission_set_count for account in accounts}

        self.overall_task = self.progress.add_task(
            "[cyan]Overall ", total=len(accounts) * permission_set_count
        )
        self.account_task = self.progress.add_task("[green]Accounts", total=len(accounts))
        self.live = Live(
            self._render(), console=self.console, refresh_per_second=4, transient=False
        )
        self.live.start()
        self.add_log("Starting to process accounts...")

    def on_unit_completed(self, event: "UnitCompleted") -> None:
        unit = event.unit
        if event.assignment_count > 0:
            plural = "s" if event.assignment_count > 1 else ""
            self.add_log(
                f"{shorten(unit.account_name, ACCOUNT_NAME_WIDTH)} / "
                f"{shorten(unit.permission_set_name, PERMISSION_SET_NAME_WIDTH)}: "
                f"{event.assignment_count} assignment{plural}"
            )
        self._advance(unit.account_id)

    def on_unit_failed(self, failure: UnitFailure) -> None:
        self.add_log(f"Failed: {failure.message}", style="red")
        self._advance(failure.unit.account_id)

    def on_retry(self, event: "RetryEvent") -> None:
        self.add_log(event.message, style="yellow")

    def on_run_finished(self, assignment_count: int) -> None:
        self.add_log(
            f"Processing complete! {assignment_count} total assignments found", style="green"
        )
        self.stop()

    def on_run_aborted(self) -> None:
        self.add_log("Processing aborted", style="red")
        self.stop()

    def stop(self) -> None:
        if self.live is not None:
            self.live.update(self._render())
            self.live.stop()
            self.live = None

    def _advance(self, account_id: str) -> None:
        if self.overall_task is not None:
            self.progress.advance(self.overall_task)

        remaining = self._remaining_by_account.get(account_id)
        if remaining is not None:
            remaining -= 1
            self._remaining_by_account[account_id] = remaining
            if remaining == 0:
                name = self._account_names.get(account_id, account_id)
                self.add_log(f"Completed: {shorten(name, ACCOUNT_NAME_WIDTH)}", style="green")
                if self.account_task is not None:
                    self.progress.advance(self.account_task)
        self._refresh()

    def _render(self) -> Group:
        activity = Group(*self.messages) if self.messages else Text("")
        return Group(
            Text("Progress:", style="bold"),
            self.progress,
            Panel(activity, title="Recent Activity", title_align="left", border_style="dim"),
        )

    def _refresh(self) -> None:
        if self.live is not None:
            self.live.update(self._render())
