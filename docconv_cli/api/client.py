"""
Async client for the remote document conversion service.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from typing import Optional

import aiohttp

from docconv_cli.exceptions import TransportError
from docconv_cli.models.config import ConverterConfig
from docconv_cli.models.session import ConversionResponse, SelectedFile

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]

UPLOAD_CHUNK_SIZE = 65536  # 64 KB

CONTENT_TYPES = {
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pdf": "application/pdf",
}


class ConversionClient:
    """
    Uploads one document per call to the conversion endpoint and returns the
    raw response.

    The endpoint contract:
    - Request: POST, multipart form with a single file field, nothing else.
    - Success: 2xx, body is the converted file, ideally with a
      Content-Disposition header naming it.
    - Failure: non-2xx, body is usually JSON with an ``error`` string.
    """

    def __init__(self, config: ConverterConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "ConversionClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _build_form(
        self, selected_file: SelectedFile, on_progress: ProgressCallback | None
    ) -> aiohttp.FormData:
        """
        Builds the multipart body. The file content is streamed in chunks so
        each chunk handed to the transport can be reported as progress.
        """
        total = selected_file.size or None

        async def stream() -> AsyncIterator[bytes]:
            loaded = 0
            content = selected_file.content
            for offset in range(0, len(content), UPLOAD_CHUNK_SIZE):
                chunk = content[offset : offset + UPLOAD_CHUNK_SIZE]
                yield chunk
                loaded += len(chunk)
                if on_progress:
                    on_progress(loaded, total)

        form = aiohttp.FormData()
        form.add_field(
            self.config.field_name,
            stream(),
            filename=selected_file.name,
            content_type=CONTENT_TYPES.get(
                selected_file.extension, "application/octet-stream"
            ),
        )
        return form

    async def convert(
        self,
        selected_file: SelectedFile,
        on_progress: ProgressCallback | None = None,
    ) -> ConversionResponse:
        """
        Sends a file to the conversion endpoint.

        Args:
            selected_file: The document to upload.
            on_progress: Called with (bytes_sent, total_bytes) after every
                uploaded chunk. total_bytes is None when unknown.

        Returns:
            The response, whatever its HTTP status.

        Raises:
            TransportError: If no response was received (network failure or timeout).
        """
        await self._initialize_session()
        url = self.config.endpoint_url
        form = self._build_form(selected_file, on_progress)

        log.debug(
            f"Uploading '{selected_file.name}' ({selected_file.size} bytes) to {url}"
        )
        start_time = time.monotonic()

        try:
            async with self._session.post(url, data=form) as r:
                body = await r.read()
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(
                    f"Conversion endpoint answered {r.status} with {len(body)} bytes "
                    f"in {duration_ms:.0f} ms"
                )
                return ConversionResponse(
                    status=r.status,
                    body=body,
                    content_disposition=r.headers.get("Content-Disposition"),
                )
        except asyncio.TimeoutError as e:
            log.debug(f"Upload of '{selected_file.name}' timed out")
            raise TransportError(
                f"Request timed out after {self.config.timeout_seconds} seconds."
            ) from e
        except aiohttp.ClientError as e:
            log.debug(f"Upload of '{selected_file.name}' failed: {e}")
            raise TransportError(str(e)) from e

    async def check_health(self) -> int:
        """
        Requests the service root and returns the HTTP status.

        Raises:
            TransportError: If the service cannot be reached.
        """
        await self._initialize_session()
        try:
            async with self._session.get(
                self.config.service_root, timeout=aiohttp.ClientTimeout(total=10)
            ) as r:
                return r.status
        except asyncio.TimeoutError as e:
            raise TransportError("Health check timed out.") from e
        except aiohttp.ClientError as e:
            raise TransportError(str(e)) from e
