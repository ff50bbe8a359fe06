"""Exception hierarchy for the Kinesis sink."""

from typing import List, Optional


class KinesisSinkError(Exception):
    """Base class for all sink errors."""


class ConfigurationError(KinesisSinkError):
    """
    Raised when the sink configuration is invalid.

    Carries every failure found during validation so the caller can
    report them all at once.
    """

    def __init__(self, failures: Optional[List] = None, message: Optional[str] = None):
        self.failures = list(failures or [])
        if message is None:
            details = "; ".join(str(f) for f in self.failures)
            message = f"Invalid configuration ({len(self.failures)} errors): {details}"
        super().__init__(message)


class StreamProvisioningError(KinesisSinkError):
    """Raised when the target stream cannot be created or resharded."""


class WriteError(KinesisSinkError):
    """Raised when a single record could not be written to the stream."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class TransientServiceError(WriteError):
    """Throttling or service-unavailable response; safe to retry."""
