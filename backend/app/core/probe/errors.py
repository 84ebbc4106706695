"""
Probe errors raised before any network attempt.

Network, auth and protocol failures are never raised to callers; they are
converted into a ProbeResult (see result.normalize).
"""

from app.models_probe import EngineKind, ErrorKind


class ProbeError(ValueError):
    """Base class for probe input errors."""

    error_kind: ErrorKind = ErrorKind.PROTOCOL


class ProbeValidationError(ProbeError):
    """Required field missing or invalid, or engine kind unrecognized."""

    error_kind = ErrorKind.VALIDATION

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields: list[str] = list(fields or [])


class UnsupportedEngineError(ProbeError):
    """Engine kind has no prober (detector returned unknown, or no driver)."""

    error_kind = ErrorKind.UNSUPPORTED_ENGINE

    def __init__(self, kind: EngineKind | str) -> None:
        value = kind.value if isinstance(kind, EngineKind) else str(kind)
        super().__init__(f"Unsupported database type: {value}")
        self.kind = value


class ProbeTimeoutError(TimeoutError):
    """Whole-probe deadline elapsed; the connection was force-closed."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Connection timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms
