"""Exception hierarchy for vertrace."""

from __future__ import annotations


class VertraceError(Exception):
    """Base class for all vertrace errors."""


class PayloadError(VertraceError):
    """Raised when a visualization payload is structurally invalid."""


class ApiError(VertraceError):
    """Raised when the version-trace backend cannot be reached or answers non-2xx."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_transport_error(self) -> bool:
        """True if no HTTP response was received at all."""
        return self.status_code is None

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"HTTP {self.status_code}: {self.message}"
