"""
Saves converted documents into the download directory.
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from pathlib import Path

import aiofiles

from docconv_cli.exceptions import DeliveryError
from docconv_cli.models.config import DEFAULT_DOWNLOAD_NAME
from docconv_cli.utils.path import create_dir, safe_filename, unique_destination

log = logging.getLogger(__name__)


@asynccontextmanager
async def staging_file(destination: Path) -> AsyncIterator[Path]:
    """
    Provides a temporary '.part' path next to `destination` and guarantees it
    is gone on exit, whether it was moved into place or abandoned.
    """
    part_path = destination.with_name(f"{destination.name}.part")
    try:
        yield part_path
    finally:
        with suppress(FileNotFoundError):
            await asyncio.to_thread(part_path.unlink)


class DownloadTrigger:
    """Writes the bytes of one converted file to disk, once per call."""

    def __init__(self, output_dir: str | Path, overwrite: bool = False):
        self.output_dir = Path(output_dir).expanduser()
        self.overwrite = overwrite

    def _resolve_destination(self, filename: str) -> Path:
        name = safe_filename(filename, DEFAULT_DOWNLOAD_NAME)
        if self.overwrite:
            return self.output_dir / name
        return unique_destination(self.output_dir, name)

    async def deliver(self, content: bytes, filename: str) -> Path:
        """
        Saves `content` under `filename` in the output directory.

        Returns:
            The final path of the saved file.

        Raises:
            DeliveryError: If the directory or the file cannot be written.
        """
        try:
            await asyncio.to_thread(create_dir, self.output_dir)
            destination = await asyncio.to_thread(self._resolve_destination, filename)
            async with staging_file(destination) as part_path:
                async with aiofiles.open(part_path, "wb") as f:
                    await f.write(content)
                await asyncio.to_thread(os.replace, part_path, destination)
        except OSError as e:
            raise DeliveryError(f"Could not save '{filename}': {e}") from e

        log.debug(f"Saved {len(content)} bytes to '{destination}'")
        return destination
