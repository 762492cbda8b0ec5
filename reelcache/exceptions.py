"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ReelCacheError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(ReelCacheError):
    """Raised for issues related to configuration loading or validation."""


class UnrecognizedURLShapeError(ReelCacheError):
    """
    Raised when a download URL does not have the path segments needed to derive
    a storage location from it.
    """

    def __init__(self, url: str, reason: str):
        super().__init__(f"Unrecognized download URL '{url}': {reason}")
        self.url = url
        self.reason = reason


class TransferError(ReelCacheError):
    """Raised when a transfer cannot be completed."""


class ProbeError(TransferError):
    """Raised when the size probe fails or returns an unusable Content-Length."""


class ContentValidationError(TransferError):
    """Raised when a downloaded file fails a post-download content check."""
