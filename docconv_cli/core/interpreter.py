"""
Turns a raw conversion response into either a downloadable file or an error
message for the user.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import unquote

from docconv_cli.exceptions import ResponseParseError, ServiceError
from docconv_cli.models.config import DEFAULT_DOWNLOAD_NAME, TARGET_EXTENSION
from docconv_cli.models.session import ConversionResponse

log = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Conversion failed."
SERVER_ERROR_MESSAGE = "Conversion failed (server error)."

_EXTENDED_FILENAME_RE = re.compile(r"filename\*\s*=\s*UTF-8''([^;]+)", re.IGNORECASE)
_PLAIN_FILENAME_RE = re.compile(
    r"(?<![\w*])filename\s*=\s*\"?([^\";]+)\"?", re.IGNORECASE
)
_EXTENSION_RE = re.compile(r"\.[^.]+$")


@dataclass(frozen=True)
class ConvertedFile:
    """A successful conversion: the bytes to save and the name to save them as."""

    filename: str
    content: bytes = field(repr=False)


def parse_content_disposition(header: str | None) -> str | None:
    """
    Extracts the filename from a Content-Disposition header.

    The RFC 5987 form (filename*=UTF-8''...) wins over a plain filename="..."
    when both are present. Returns None if neither form matches.
    """
    if not header:
        return None
    if match := _EXTENDED_FILENAME_RE.search(header):
        return unquote(match.group(1).strip(), encoding="utf-8")
    if match := _PLAIN_FILENAME_RE.search(header):
        return match.group(1).strip()
    return None


def fallback_filename(original_name: str) -> str:
    """
    Guesses the converted file's name from the uploaded one by swapping the
    extension: report.docx -> report.pdf and report.pdf -> report.docx.

    This assumes the service always produces the opposite format, which cannot
    be checked from here.
    """
    _, dot, ext = original_name.rpartition(".")
    target = TARGET_EXTENSION.get(ext.lower()) if dot else None
    if target is None:
        return DEFAULT_DOWNLOAD_NAME
    base = _EXTENSION_RE.sub("", original_name)
    return f"{base}.{target}"


def derive_filename(content_disposition: str | None, original_name: str) -> str:
    """Picks the download name from the response header, else by extension swap."""
    if filename := parse_content_disposition(content_disposition):
        return filename
    log.debug(
        f"No usable Content-Disposition filename, inferring from '{original_name}'"
    )
    return fallback_filename(original_name)


def parse_error_body(body: bytes) -> str:
    """
    Reads the ``error`` field out of a JSON error body.

    Raises:
        ResponseParseError: If the body is empty, not UTF-8 text, or not JSON.
    """
    if not body:
        raise ResponseParseError("Error response has an empty body.")
    try:
        text = body.decode("utf-8")
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ResponseParseError(f"Error response is not valid JSON: {e}") from e

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, str) and error.strip():
        return error
    return GENERIC_FAILURE_MESSAGE


def extract_error_message(body: bytes) -> str:
    """Returns a user-facing message for an error body. Never raises."""
    try:
        return parse_error_body(body)
    except ResponseParseError as e:
        log.debug(f"Falling back to generic error message: {e}")
        return SERVER_ERROR_MESSAGE


def transport_error_message(error: BaseException) -> str:
    """Message for a request that never got a response."""
    return str(error).strip() or GENERIC_FAILURE_MESSAGE


def interpret(response: ConversionResponse, original_name: str) -> ConvertedFile:
    """
    Classifies a response as a converted file or a service error.

    Raises:
        ServiceError: For a non-2xx response, carrying the user-facing message.
    """
    if not response.ok:
        message = extract_error_message(response.body)
        log.debug(f"Conversion service returned {response.status}: {message}")
        raise ServiceError(message, status=response.status)

    filename = derive_filename(response.content_disposition, original_name)
    return ConvertedFile(filename=filename, content=response.body)
