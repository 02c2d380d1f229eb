"""
Error types raised by Sitesync components.
"""


class SitesyncError(Exception):
    """Base class for all Sitesync errors."""


class ConfigError(SitesyncError):
    """Raised when a configuration value is missing or invalid."""


class SourceUnavailable(SitesyncError):
    """Raised when the content source cannot be reached or returns an unusable response."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RecordMalformed(SitesyncError):
    """Raised when a single article record is missing required fields."""

    def __init__(self, message, record_id=None):
        super().__init__(message)
        self.record_id = record_id


class IndexCorrupt(SitesyncError):
    """Raised when the persisted article index exists but cannot be read."""


class NotifyFailure(SitesyncError):
    """Describes a failed search engine submission. Reported, never raised past the notifier."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RenderError(SitesyncError):
    """Raised when an article page cannot be rendered from its template."""
