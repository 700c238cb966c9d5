"""
The conversion session: holds the selected document and drives one upload,
conversion and download at a time.

State moves Idle -> Uploading -> Done | Error. Done and Error only return to
Idle through reset(); picking a new file does not change the status, and a
new submit() re-enters Uploading directly.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from docconv_cli.api.client import ConversionClient
from docconv_cli.exceptions import (
    DeliveryError,
    FileSelectionError,
    FileValidationError,
    ServiceError,
    TransportError,
    UploadInProgressError,
)
from docconv_cli.files.delivery import DownloadTrigger
from docconv_cli.models.config import ALLOWED_EXTENSIONS
from docconv_cli.models.session import SelectedFile, SessionStatus
from docconv_cli.utils.path import parse_dropped_path

from .interpreter import GENERIC_FAILURE_MESSAGE, interpret, transport_error_message

log = logging.getLogger(__name__)

NO_FILE_MESSAGE = "Please choose a DOCX or PDF file first."
EXTENSION_MESSAGE = "Only .docx or .pdf files are allowed."
SUCCESS_MESSAGE = "Conversion finished. Saved to '{path}'."

Listener = Callable[["ConversionSession"], None]


class ConversionSession:
    """
    Controller for a single conversion attempt at a time.

    All state is private and changes only through the methods below. Listeners
    registered with add_listener() are called after every change so a
    presentation layer can render status, progress and message.
    """

    def __init__(self, client: ConversionClient, trigger: DownloadTrigger):
        self._client = client
        self._trigger = trigger

        self._selected_file: Optional[SelectedFile] = None
        self._status = SessionStatus.IDLE
        self._progress_percent = 0
        self._message = ""
        self._saved_path: Optional[Path] = None

        # Bumped by reset() so a request that outlives it cannot touch the state
        self._attempt = 0
        self._listeners: list[Listener] = []

    @property
    def selected_file(self) -> Optional[SelectedFile]:
        return self._selected_file

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def progress_percent(self) -> int:
        return self._progress_percent

    @property
    def message(self) -> str:
        return self._message

    @property
    def saved_path(self) -> Optional[Path]:
        """Where the last successful conversion was saved."""
        return self._saved_path

    @property
    def is_busy(self) -> bool:
        return self._status is SessionStatus.UPLOADING

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    # File selection

    def select_file(self, candidate: SelectedFile) -> None:
        """Replaces the selected file. Validation waits until submit()."""
        self._selected_file = candidate
        log.debug(f"Selected '{candidate.name}' ({candidate.size} bytes)")
        self._notify()

    def select_path(self, path: str | Path) -> None:
        """
        Selects a file from disk, as a file picker would.

        Raises:
            FileSelectionError: If the path is not a readable file.
        """
        self.select_file(SelectedFile.from_path(path))

    def select_dropped(self, text: str) -> None:
        """
        Selects a file dragged onto the terminal.

        Raises:
            FileSelectionError: If nothing usable was dropped.
        """
        path = parse_dropped_path(text)
        if not path:
            raise FileSelectionError("Nothing was dropped.")
        self.select_path(path)

    def clear_file(self) -> None:
        self._selected_file = None
        self._notify()

    def reset(self) -> None:
        """
        Returns to Idle and forgets the file, progress and message. A request
        still in flight is not aborted, but its result is discarded.
        """
        self._attempt += 1
        self._selected_file = None
        self._status = SessionStatus.IDLE
        self._progress_percent = 0
        self._message = ""
        self._saved_path = None
        log.debug("Session reset")
        self._notify()

    # Submission

    def validate_selection(self) -> SelectedFile:
        """
        Client-side gate run before any network activity. The service does
        its own, authoritative validation.

        Raises:
            FileValidationError: If no file is selected or its extension is not allowed.
        """
        if self._selected_file is None:
            raise FileValidationError(NO_FILE_MESSAGE)
        if self._selected_file.extension not in ALLOWED_EXTENSIONS:
            raise FileValidationError(EXTENSION_MESSAGE)
        return self._selected_file

    async def submit(self) -> SessionStatus:
        """
        Uploads the selected file, saves the converted result and returns the
        resulting status.

        Validation failures only set the message. Transport, service and
        delivery failures end in Error with a message; none of them propagate.

        Raises:
            UploadInProgressError: If an upload is already running.
        """
        if self.is_busy:
            raise UploadInProgressError("A conversion is already in progress.")

        try:
            selected = self.validate_selection()
        except FileValidationError as e:
            log.debug(f"Submission rejected: {e}")
            self._message = str(e)
            self._notify()
            return self._status

        attempt = self._attempt
        self._status = SessionStatus.UPLOADING
        self._progress_percent = 0
        self._message = ""
        self._saved_path = None
        self._notify()
        log.info(f"Converting [cyan]{selected.name}[/cyan]...")

        def on_progress(loaded: int, total: Optional[int]) -> None:
            if attempt == self._attempt:
                self._update_progress(loaded, total)

        try:
            response = await self._client.convert(selected, on_progress=on_progress)
            converted = interpret(response, selected.name)
            if attempt != self._attempt:
                log.debug(f"Discarding result for '{selected.name}' after reset")
                return self._status
            saved_path = await self._trigger.deliver(
                converted.content, converted.filename
            )
        except TransportError as e:
            self._fail(attempt, transport_error_message(e))
        except (ServiceError, DeliveryError) as e:
            self._fail(attempt, str(e))
        except Exception as e:
            log.error(
                f"[red]Unexpected error during conversion: {e}[/red]", exc_info=True
            )
            self._fail(attempt, GENERIC_FAILURE_MESSAGE)
        else:
            self._complete(attempt, saved_path)

        return self._status

    def _update_progress(self, loaded: int, total: Optional[int]) -> None:
        """Applies a transport progress report; unknown totals are ignored."""
        if not total or total <= 0:
            return
        percent = min(100, round(loaded * 100 / total))
        if percent > self._progress_percent:
            self._progress_percent = percent
            self._notify()

    def _complete(self, attempt: int, saved_path: Path) -> None:
        if attempt != self._attempt:
            return
        self._saved_path = saved_path
        self._status = SessionStatus.DONE
        self._progress_percent = 100
        self._message = SUCCESS_MESSAGE.format(path=saved_path)
        log.debug(f"Conversion done: '{saved_path}'")
        self._notify()

    def _fail(self, attempt: int, message: str) -> None:
        if attempt != self._attempt:
            return
        self._status = SessionStatus.ERROR
        self._message = message or GENERIC_FAILURE_MESSAGE
        log.debug(f"Conversion failed: {self._message}")
        self._notify()
