"""
Custom exceptions for the Notion export pipeline.
"""


class ExportError(Exception):
    """Base exception for export operations."""
    pass


class ConfigurationError(ExportError):
    """Raised when configuration is invalid or missing."""
    pass


class RemoteError(ExportError):
    """Raised when a Notion API call fails."""
    pass


class EmptyResultError(ExportError):
    """Raised when the page source yields no pages."""
    pass


class SlugCollisionError(ExportError):
    """Raised when two pages map to the same output file."""
    pass
