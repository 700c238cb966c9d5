"""
Conversion Service API Layer.

This package handles all communication with the remote conversion endpoint.
"""

from .client import ConversionClient

__all__ = ["ConversionClient"]
