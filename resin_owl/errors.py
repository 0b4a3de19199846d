"""Error taxonomy for backend clients."""

from __future__ import annotations

from typing import Optional


class BackendError(Exception):
    """Base class for every failure surfaced by a backend client."""


class TransportFailure(BackendError):
    """The engine could not be reached (connection refused, DNS, timeout)."""


BackendUnavailable = TransportFailure


class UnexpectedResponse(BackendError):
    """The engine answered, but not with something we can use."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


class Unsupported(BackendError):
    """The operation is not available on this backend variant."""

    def __init__(self, backend: str, operation: str) -> None:
        super().__init__(f"{backend} does not support {operation}")
        self.backend = backend
        self.operation = operation


__all__ = [
    "BackendError",
    "BackendUnavailable",
    "TransportFailure",
    "UnexpectedResponse",
    "Unsupported",
]
