"""
Connectivity test entry points: dispatch a string or form payload to one probe.

- string path: detect the engine; unknown fails with UnsupportedEngine before
  any network attempt, otherwise the string is probed as-is.
- form path: validate the kind and every required field first (fail fast with
  ProbeValidationError), then build the descriptor and probe it.

Exactly one prober call per invocation: no retries and no fallback engine.
"""

import functools
import logging
from collections.abc import Mapping
from typing import Any

from anyio import to_thread

from app.core.probe.descriptor import ConnectionDescriptor, descriptor_from_fields
from app.core.probe.detect import detect
from app.core.probe.errors import UnsupportedEngineError
from app.core.probe.probers import run_probe
from app.core.probe.result import ProbeResult
from app.models_probe import EngineKind, ErrorKind
from app.schemas_probe import ConnectionFormIn, ConnectionStringIn

_log = logging.getLogger(__name__)

UNRECOGNIZED_MESSAGE = (
    "Unsupported database type: could not detect the engine from the connection "
    "string (expected postgresql://, postgres://, mysql://, mongodb:// or "
    "mongodb+srv://)"
)

Payload = str | ConnectionStringIn | ConnectionFormIn | Mapping[str, Any]


def detect_type(connection_string: str) -> EngineKind:
    """Engine kind for connection_string without touching the network."""
    return detect(connection_string)


def _unsupported(kind: EngineKind, message: str) -> ProbeResult:
    return ProbeResult.failed(kind, ErrorKind.UNSUPPORTED_ENGINE, message)


def _probe_string(connection_string: str, timeout_ms: int | None) -> ProbeResult:
    kind = detect(connection_string)
    if kind == EngineKind.UNKNOWN:
        _log.info("Connection test rejected: unrecognized connection string")
        return _unsupported(kind, UNRECOGNIZED_MESSAGE)
    descriptor = ConnectionDescriptor.from_url(connection_string)
    return run_probe(descriptor, timeout_ms)


def _probe_form(form: ConnectionFormIn, timeout_ms: int | None) -> ProbeResult:
    is_mongo = (form.type or "").strip().lower() == EngineKind.MONGODB.value
    try:
        descriptor = descriptor_from_fields(
            form.type,
            form.host,
            form.port,
            form.database,
            form.username,
            form.password,
            ssl=form.ssl,
            options=form.mongo_options() if is_mongo else None,
        )
    except UnsupportedEngineError as e:
        _log.info("Connection test rejected: %s", e)
        return _unsupported(EngineKind.UNKNOWN, str(e))
    return run_probe(descriptor, timeout_ms)


def _coerce(payload: Payload) -> ConnectionStringIn | ConnectionFormIn:
    if isinstance(payload, (ConnectionStringIn, ConnectionFormIn)):
        if getattr(payload, "connection_string", None):
            return ConnectionStringIn(connection_string=payload.connection_string)
        return payload
    if isinstance(payload, str):
        return ConnectionStringIn(connection_string=payload)
    if isinstance(payload, Mapping):
        if payload.get("connectionString") or payload.get("connection_string"):
            return ConnectionStringIn.model_validate(payload)
        return ConnectionFormIn.model_validate(payload)
    raise TypeError(f"unsupported connection test payload: {type(payload).__name__}")


def test_connection(payload: Payload, *, timeout_ms: int | None = None) -> ProbeResult:
    """
    Test connectivity for a connection string or a form payload.

    Returns a ProbeResult for every probe outcome, including unsupported
    engines. Raises ProbeValidationError (before any network attempt) when the
    form is missing fields or the connection string cannot be parsed.

    timeout_ms defaults to settings.PROBE_TIMEOUT_MS.
    """
    request = _coerce(payload)
    if isinstance(request, ConnectionStringIn):
        return _probe_string(request.connection_string, timeout_ms)
    return _probe_form(request, timeout_ms)


async def atest_connection(
    payload: Payload, *, timeout_ms: int | None = None
) -> ProbeResult:
    """test_connection on a worker thread, for async callers."""
    return await to_thread.run_sync(
        functools.partial(test_connection, payload, timeout_ms=timeout_ms)
    )
