"""
docconv-cli: convert DOCX documents to PDF and back through a remote conversion service.
"""

__version__ = "1.0.0"
