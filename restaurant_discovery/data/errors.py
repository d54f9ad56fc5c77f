"""
Domain errors for the discovery pipeline.
"""


class DiscoveryError(Exception):
    """Base class for discovery pipeline failures."""


class ConfigError(DiscoveryError):
    """Raised for malformed configuration, before any adapter work starts."""


class AdapterError(DiscoveryError):
    """Raised inside a single source adapter. Never leaves the orchestrator."""


class UpstreamHTTPError(AdapterError):
    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class RetryableUpstreamError(UpstreamHTTPError):
    """Transient upstream failure (throttling, 5xx) that clients may retry."""
