"""
Renders the live status and progress of a conversion session with Rich.
"""

import asyncio

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from docconv_cli.core.session import ConversionSession
from docconv_cli.models.session import SessionStatus

STATUS_STYLES = {
    SessionStatus.IDLE: "dim",
    SessionStatus.UPLOADING: "cyan",
    SessionStatus.DONE: "green",
    SessionStatus.ERROR: "red",
}


class ProgressManager:
    """
    Session listener that keeps one progress bar in sync with the session's
    status and percentage.
    """

    def __init__(self, console: Console, quiet: bool = False):
        self.console = console
        self.quiet = quiet

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TextColumn("{task.fields[status]}"),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._task_id: TaskID | None = None
        self._started = False

    def attach(self, session: ConversionSession) -> None:
        session.add_listener(self.on_session_change)

    @staticmethod
    def describe_status(session: ConversionSession) -> str:
        """Short, styled status label for the progress line."""
        status = session.status
        label = status.value
        if status is SessionStatus.UPLOADING and session.progress_percent >= 100:
            label = "converting"
        style = STATUS_STYLES.get(status, "")
        return f"[{style}]{label}[/{style}]" if style else label

    def on_session_change(self, session: ConversionSession) -> None:
        if self.quiet:
            return

        if session.status is SessionStatus.UPLOADING and self._task_id is None:
            name = session.selected_file.name if session.selected_file else "document"
            if len(name) > 40:
                name = name[:37] + "..."
            self._task_id = self.progress.add_task(
                name, total=100, status=self.describe_status(session)
            )

        if self._task_id is None:
            return

        self.progress.update(
            self._task_id,
            completed=session.progress_percent,
            status=self.describe_status(session),
        )
        if session.status in (SessionStatus.DONE, SessionStatus.ERROR):
            self.progress.stop_task(self._task_id)
            self._task_id = None
        elif session.status is SessionStatus.IDLE:
            self.progress.remove_task(self._task_id)
            self._task_id = None

    async def __aenter__(self):
        if not self.quiet and not self._started:
            self.progress.start()
            self._started = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._started:
            await asyncio.sleep(0.1)
            self.progress.stop()
            self._started = False
        # Finished bars must not reappear the next time the display starts
        for task in list(self.progress.tasks):
            self.progress.remove_task(task.id)
        self._task_id = None
