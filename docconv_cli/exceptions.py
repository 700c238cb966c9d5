"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class DocconvError(Exception):
    """Base exception for all application-specific errors."""


class FileSelectionError(DocconvError):
    """Raised when a picked or dropped path cannot be loaded as a file."""


class FileValidationError(DocconvError):
    """Raised when the selected file fails the client-side submission checks."""


class UploadInProgressError(DocconvError):
    """Raised when a conversion is submitted while another one is still uploading."""


class TransportError(DocconvError):
    """
    Raised when no response was received from the conversion service
    (connectivity loss, refused connection, timeout).
    """


class ServiceError(DocconvError):
    """Raised when the conversion service answers with a non-2xx status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ResponseParseError(DocconvError):
    """Raised when an error body from the service cannot be decoded or parsed."""


class DeliveryError(DocconvError):
    """Raised when a converted file cannot be written to the download directory."""


class ConfigurationError(DocconvError):
    """Raised for issues related to configuration loading or validation."""
