"""
Core application engine for the conversion workflow.

The `ConversionSession` is the state machine that owns the selected file and
drives each attempt. It hands the raw service response to the `interpreter`
functions, which decide between a file to save and an error message.
"""

from .interpreter import (
    ConvertedFile,
    derive_filename,
    extract_error_message,
    interpret,
)
from .session import ConversionSession

__all__ = [
    "ConversionSession",
    "ConvertedFile",
    "derive_filename",
    "extract_error_message",
    "interpret",
]
