"""
Utilities for handling file paths and terminal-dropped path strings.
"""

import shlex
from pathlib import Path

from pathvalidate import sanitize_filename


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def parse_dropped_path(text: str) -> str:
    """
    Normalises a path that was dragged onto a terminal.

    Terminals paste dropped files as text, either quoted ('/tmp/my file.pdf')
    or with escaped spaces (/tmp/my\\ file.pdf), sometimes with a file:// prefix.
    Only the first dropped path is kept.
    """
    text = text.strip()
    if not text:
        return ""
    try:
        parts = shlex.split(text)
    except ValueError:
        # Unbalanced quotes: treat the whole text as a single path
        parts = [text.strip("'\"")]
    path = parts[0] if parts else ""
    if path.startswith("file://"):
        path = path[len("file://") :]
    return path


def safe_filename(filename: str, default: str) -> str:
    """Strips directory parts and characters that are invalid in file names."""
    name = sanitize_filename(Path(filename.replace("\\", "/")).name, platform="auto")
    return name or default


def unique_destination(directory: Path, filename: str) -> Path:
    """
    Returns a path in `directory` that does not exist yet, numbering the name
    the way browsers do: 'report.pdf', 'report (1).pdf', 'report (2).pdf'...
    """
    candidate = directory / filename
    if not candidate.exists():
        return candidate

    stem, suffix = candidate.stem, candidate.suffix
    counter = 1
    while True:
        candidate = directory / f"{stem} ({counter}){suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
