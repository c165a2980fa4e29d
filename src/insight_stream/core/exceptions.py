"""Domain exceptions for the analysis stream consumer.

Each exception carries a stable `error_code` so callers and logs can branch on
the failure kind without parsing messages. They are raised inside the session
controller and fallback orchestrator and converted to plain `error` strings at
the controller boundary; none of them escape to callers.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class AnalysisStreamError(Exception):
    """Base class for analysis stream errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class TransportError(AnalysisStreamError):
    def __init__(self, message: str = "Unable to establish the analysis stream") -> None:
        super().__init__(message=message, error_code="transport_failed")


class StreamNotAvailable(AnalysisStreamError):
    """Streaming route answered 404; the caller switches to the fallback path."""

    def __init__(self, message: str = "Streaming endpoint not available") -> None:
        super().__init__(message=message, error_code="stream_not_available")


class StreamTruncatedError(AnalysisStreamError):
    def __init__(
        self, message: str = "Stream ended without a complete response"
    ) -> None:
        super().__init__(message=message, error_code="stream_truncated")


class ServerReportedError(AnalysisStreamError):
    def __init__(self, message: str = "Streaming analysis failed") -> None:
        super().__init__(message=message, error_code="server_error")


class FallbackError(AnalysisStreamError):
    def __init__(self, message: str = "Analysis request failed") -> None:
        super().__init__(message=message, error_code="fallback_failed")
