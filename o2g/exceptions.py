"""Exceptions raised by O2G."""


class O2GError(Exception):
    """Base exception for O2G errors."""
    pass


class ConfigError(O2GError):
    """Raised when the publishing configuration is missing or invalid."""
    pass


class MetadataError(O2GError):
    """Raised when front matter cannot be turned into publishable metadata."""
    pass


class GhostAPIError(O2GError):
    """Raised when the Ghost Admin API rejects a request or is unreachable."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class PublishError(O2GError):
    """Raised when a note cannot be published."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.path = path
