"""
Storage Layer.

This package handles the configuration file. Sessions themselves are never
persisted.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
