"""
Data Models Layer.

This package contains the Pydantic configuration model and the plain data
structures that describe a conversion session.
"""

from .config import ConverterConfig
from .session import ConversionResponse, SelectedFile, SessionStatus

__all__ = ["ConversionResponse", "ConverterConfig", "SelectedFile", "SessionStatus"]
