"""
Exception hierarchy for dualstore.

Backend failures are raised by adapters as BackendError and turned into
BackendOutcome data by the orchestrator. Only PreconditionError (and its
subclasses) escape the orchestrator.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Classification carried by a failed backend outcome."""
    TRANSIENT = "transient"        # network blip, throttling, 5xx
    PERMANENT = "permanent"        # bad credentials, missing bucket, quota
    TIMEOUT = "timeout"            # shared upload deadline expired
    PAYLOAD_READ = "payload_read"  # shared input became unreadable
    UNKNOWN = "unknown"            # adapter raised something unclassified


class DualStoreError(Exception):
    """Base exception for all dualstore errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PreconditionError(DualStoreError):
    """Caller-supplied destination or configuration is structurally invalid."""


class ConfigError(PreconditionError):
    """Raised when settings are missing or invalid."""


class PayloadTooLargeError(PreconditionError):
    """Payload exceeded the configured maximum file size."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"Payload exceeds maximum file size of {limit} bytes",
            details={"max_file_size": limit},
        )
        self.limit = limit


class PayloadReadError(DualStoreError):
    """The shared input stream could not be read."""


class BackendError(DualStoreError):
    """
    Failure reported by a storage backend adapter.

    Args:
        kind: ErrorKind.TRANSIENT or ErrorKind.PERMANENT as classified by the adapter
        message: Human readable description
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind

    @classmethod
    def transient(cls, message: str, **details: Any) -> "BackendError":
        return cls(ErrorKind.TRANSIENT, message, details)

    @classmethod
    def permanent(cls, message: str, **details: Any) -> "BackendError":
        return cls(ErrorKind.PERMANENT, message, details)
