"""
Structured logging for connectivity probes.

Only redacted targets ever reach the log: the password is masked in the
descriptor rendering and scrubbed from driver messages.
"""

import json
import logging
import re
import time
from collections.abc import Iterable

probe_logger = logging.getLogger("app.probe")

# scheme://user:password@  ->  scheme://user:***@
_USERINFO_RE = re.compile(r"(?P<scheme>[a-zA-Z][\w+.-]*://)(?P<user>[^:/@\s]*):[^@\s]*@")
# libpq keyword form: password=secret
_KEYWORD_PW_RE = re.compile(r"(password\s*=\s*)('[^']*'|\S+)", re.IGNORECASE)


def redact(text: str, secrets: Iterable[str] = ()) -> str:
    """Mask URI userinfo, libpq password keywords and every known secret."""
    out = _USERINFO_RE.sub(r"\g<scheme>\g<user>:***@", text)
    out = _KEYWORD_PW_RE.sub(r"\1***", out)
    for secret in secrets:
        if secret:
            out = out.replace(secret, "***")
    return out


def log_probe(
    target: str,
    engine: str,
    success: bool,
    latency_ms: int | None = None,
    error_kind: str | None = None,
    error: str | None = None,
) -> None:
    """Log one probe outcome. target must already be redacted."""
    log_data: dict[str, object] = {
        "event": "connection_probe",
        "target": target,
        "engine": engine,
        "success": success,
        "latency_ms": latency_ms,
    }
    if error_kind:
        log_data["error_kind"] = error_kind
    if error:
        log_data["error"] = error

    if success:
        probe_logger.info(json.dumps(log_data))
    else:
        probe_logger.warning(json.dumps(log_data))


class ProbeTimer:
    """Monotonic stopwatch; elapsed_ms is readable while running."""

    def __init__(self) -> None:
        self.start_time: float = 0.0
        self.stop_time: float | None = None

    def __enter__(self) -> "ProbeTimer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        self.start_time = time.monotonic()
        self.stop_time = None

    def stop(self) -> int:
        if self.stop_time is None:
            self.stop_time = time.monotonic()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> int:
        end = self.stop_time if self.stop_time is not None else time.monotonic()
        return int(round((end - self.start_time) * 1000))
