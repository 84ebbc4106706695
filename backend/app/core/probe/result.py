"""
ProbeResult and the normalizer that maps driver outcomes onto it.

Driver exceptions (psycopg, pymysql, pymongo, socket errors) are classified
into one ErrorKind. The driver's message is kept for display with credential
material scrubbed; the attempted engine kind is always stamped.
"""

from typing import Any

import psycopg
import pymysql
from pydantic import BaseModel, model_validator
from pymongo import errors as mongo_errors

from app.core.probe.errors import ProbeError
from app.core.probe.log import redact
from app.models_probe import EngineKind, ErrorKind

SUCCESS_MESSAGE = "Connection successful"
FALLBACK_MESSAGE = "Connection failed"

# SQLSTATE codes (Postgres)
_PG_INVALID_AUTHORIZATION_CLASS = "28"
_PG_INVALID_CATALOG_NAME = "3D000"
_PG_QUERY_CANCELED = "57014"

# MySQL server / client error codes
_MYSQL_AUTH_CODES = frozenset({1044, 1045, 1251, 1698})
_MYSQL_UNKNOWN_DATABASE = 1049
_MYSQL_MAX_EXECUTION_TIME_EXCEEDED = 3024
_MYSQL_NETWORK_CODES = frozenset({2002, 2003, 2005, 2006, 2013})

# MongoDB server error codes
_MONGO_AUTH_FAILED = 18
_MONGO_UNAUTHORIZED = 13
_MONGO_MAX_TIME_EXPIRED = 50

_TIMEOUT_MARKERS = ("timeout expired", "timed out", "timeout")
_AUTH_MARKERS = (
    "password authentication failed",
    "no password supplied",
    "authentication failed",
    "access denied",
)
_NETWORK_MARKERS = (
    "connection refused",
    "could not translate host name",
    "name or service not known",
    "nodename nor servname",
    "no route to host",
    "network is unreachable",
    "host is unreachable",
    "temporary failure in name resolution",
    "could not connect",
)


class ProbeResult(BaseModel):
    """Outcome of one connection attempt, identical in shape for every engine."""

    success: bool
    engine_kind: EngineKind
    latency_ms: int | None = None
    error_kind: ErrorKind | None = None
    message: str = ""

    @model_validator(mode="after")
    def _check_outcome(self) -> "ProbeResult":
        if self.success and self.error_kind is not None:
            raise ValueError("a successful probe cannot carry an error kind")
        if not self.success and not self.message.strip():
            raise ValueError("a failed probe needs a message")
        return self

    @classmethod
    def ok(cls, engine_kind: EngineKind, latency_ms: int) -> "ProbeResult":
        return cls(
            success=True,
            engine_kind=engine_kind,
            latency_ms=latency_ms,
            message=SUCCESS_MESSAGE,
        )

    @classmethod
    def failed(
        cls,
        engine_kind: EngineKind,
        error_kind: ErrorKind,
        message: str,
        latency_ms: int | None = None,
    ) -> "ProbeResult":
        return cls(
            success=False,
            engine_kind=engine_kind,
            latency_ms=latency_ms,
            error_kind=error_kind,
            message=message.strip() or FALLBACK_MESSAGE,
        )


def _has_marker(message: str, markers: tuple[str, ...]) -> bool:
    return any(m in message for m in markers)


def _classify_postgres(exc: psycopg.Error, connected: bool) -> ErrorKind:
    if isinstance(exc, psycopg.errors.QueryCanceled):
        return ErrorKind.TIMEOUT
    sqlstate = getattr(exc, "sqlstate", None) or ""
    if sqlstate.startswith(_PG_INVALID_AUTHORIZATION_CLASS):
        return ErrorKind.AUTHENTICATION
    if sqlstate == _PG_INVALID_CATALOG_NAME:
        return ErrorKind.PROTOCOL
    if sqlstate == _PG_QUERY_CANCELED:
        return ErrorKind.TIMEOUT

    # Connection-phase errors rarely carry a SQLSTATE; fall back to libpq text.
    message = str(exc).lower()
    if isinstance(exc, psycopg.ProgrammingError) and "invalid" in message:
        return ErrorKind.VALIDATION
    if _has_marker(message, _AUTH_MARKERS):
        return ErrorKind.AUTHENTICATION
    if "database" in message and "does not exist" in message:
        return ErrorKind.PROTOCOL
    if _has_marker(message, _TIMEOUT_MARKERS):
        return ErrorKind.TIMEOUT
    if _has_marker(message, _NETWORK_MARKERS):
        return ErrorKind.NETWORK
    if isinstance(exc, psycopg.OperationalError) and not connected:
        return ErrorKind.NETWORK
    return ErrorKind.PROTOCOL


def _classify_mysql(exc: pymysql.err.MySQLError, connected: bool) -> ErrorKind:
    code = exc.args[0] if exc.args and isinstance(exc.args[0], int) else None
    message = str(exc).lower()
    if code in _MYSQL_AUTH_CODES:
        return ErrorKind.AUTHENTICATION
    if code == _MYSQL_UNKNOWN_DATABASE:
        return ErrorKind.PROTOCOL
    if code == _MYSQL_MAX_EXECUTION_TIME_EXCEEDED:
        return ErrorKind.TIMEOUT
    if code in _MYSQL_NETWORK_CODES:
        if _has_marker(message, _TIMEOUT_MARKERS):
            return ErrorKind.TIMEOUT
        return ErrorKind.NETWORK
    if isinstance(exc, pymysql.err.OperationalError) and not connected:
        return ErrorKind.NETWORK
    return ErrorKind.PROTOCOL


def _classify_mongo(exc: mongo_errors.PyMongoError, connected: bool) -> ErrorKind:
    if isinstance(exc, mongo_errors.InvalidURI):
        return ErrorKind.VALIDATION
    if isinstance(exc, mongo_errors.ExecutionTimeout):
        return ErrorKind.TIMEOUT
    if isinstance(exc, mongo_errors.OperationFailure):
        if exc.code in (_MONGO_AUTH_FAILED, _MONGO_UNAUTHORIZED):
            return ErrorKind.AUTHENTICATION
        if exc.code == _MONGO_MAX_TIME_EXPIRED:
            return ErrorKind.TIMEOUT
        if "authentication failed" in str(exc).lower():
            return ErrorKind.AUTHENTICATION
        return ErrorKind.PROTOCOL
    # Server selection gives up when no server answered: unreachable.
    if isinstance(exc, mongo_errors.ServerSelectionTimeoutError):
        return ErrorKind.NETWORK
    if isinstance(exc, mongo_errors.NetworkTimeout):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (mongo_errors.ConnectionFailure, mongo_errors.ConfigurationError)):
        return ErrorKind.NETWORK
    return ErrorKind.PROTOCOL if connected else ErrorKind.NETWORK


def classify(exc: BaseException, *, connected: bool = False) -> ErrorKind:
    """
    Map an exception raised while probing to an ErrorKind.

    connected tells whether the connection had been established before the
    failure; driver errors after that point default to ProtocolError.
    """
    if isinstance(exc, ProbeError):
        return exc.error_kind
    if isinstance(exc, psycopg.Error):
        return _classify_postgres(exc, connected)
    if isinstance(exc, pymysql.err.MySQLError):
        return _classify_mysql(exc, connected)
    if isinstance(exc, mongo_errors.PyMongoError):
        return _classify_mongo(exc, connected)
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, OSError):
        return ErrorKind.NETWORK
    return ErrorKind.PROTOCOL if connected else ErrorKind.NETWORK


def normalize(
    raw_outcome: Any,
    engine_kind: EngineKind,
    *,
    latency_ms: int | None = None,
    connected: bool = False,
    secrets: list[str] | None = None,
) -> ProbeResult:
    """
    Turn a prober outcome into a ProbeResult.

    raw_outcome is either the measured latency (int/float, success) or the
    exception that ended the probe. latency_ms is reported on failures only
    when the connection had been established.
    """
    if isinstance(raw_outcome, BaseException):
        message = redact(str(raw_outcome) or FALLBACK_MESSAGE, secrets or [])
        return ProbeResult.failed(
            engine_kind,
            classify(raw_outcome, connected=connected),
            message,
            latency_ms=latency_ms if connected else None,
        )
    if isinstance(raw_outcome, bool) or not isinstance(raw_outcome, (int, float)):
        raise TypeError(f"unexpected probe outcome: {type(raw_outcome).__name__}")
    return ProbeResult.ok(engine_kind, int(round(raw_outcome)))
