"""
Data structures shared by the conversion session, the HTTP client and the
response interpreter.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from docconv_cli.exceptions import FileSelectionError


class SessionStatus(str, Enum):
    """Lifecycle states of a conversion session."""

    IDLE = "idle"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class SelectedFile:
    """A user-provided document held by the session as the upload candidate."""

    name: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        """Lower-cased text after the last '.', or '' if the name has none."""
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""

    @classmethod
    def from_path(cls, path: str | Path) -> "SelectedFile":
        """
        Loads a file from disk.

        Raises:
            FileSelectionError: If the path does not point to a readable file.
        """
        path = Path(path).expanduser()
        if not path.is_file():
            raise FileSelectionError(f"No such file: '{path}'")
        try:
            content = path.read_bytes()
        except OSError as e:
            raise FileSelectionError(f"Could not read '{path}': {e}") from e
        return cls(name=path.name, content=content)


@dataclass(frozen=True)
class ConversionResponse:
    """The raw result of one round trip to the conversion endpoint."""

    status: int
    body: bytes = field(default=b"", repr=False)
    content_disposition: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
