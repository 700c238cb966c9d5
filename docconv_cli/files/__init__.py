"""
File Delivery Layer.

This package is responsible for saving converted documents to disk.
"""

from .delivery import DownloadTrigger

__all__ = ["DownloadTrigger"]
