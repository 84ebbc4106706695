"""
Per-engine connection probers and the deadline that bounds them.

Each prober opens exactly one connection, runs one liveness command and
returns the elapsed milliseconds. Driver errors propagate to run_probe, which
normalizes them. Probers are plain functions selected through PROBERS; there
is no adapter hierarchy.

Liveness commands:
- postgresql / supabase / mysql: SELECT 1 against the target database, so a
  missing database fails the probe.
- mongodb: ping against the admin database, so the named database does not
  need to exist.
"""

import logging
import math
import threading
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import psycopg
import pymysql
from pymongo import MongoClient
from pymongo.errors import OperationFailure, PyMongoError

from app.core.config import settings
from app.core.probe.descriptor import ConnectionDescriptor
from app.core.probe.errors import ProbeError, ProbeTimeoutError
from app.core.probe.log import ProbeTimer, log_probe
from app.core.probe.result import ProbeResult, normalize
from app.models_probe import EngineKind, ErrorKind

_log = logging.getLogger(__name__)

LIVENESS_SQL = "SELECT 1"

# Driver timeouts fire at the ceiling; the hard deadline only catches what
# they miss, so it trails them slightly.
DEADLINE_SLACK_MS = 500
# After an abort, how long to wait for the worker to release the connection.
ABORT_GRACE_SECONDS = 1.0

# Pooler/ORM hints found in Supabase and Prisma URLs; libpq fails on them.
NON_LIBPQ_PARAMS = frozenset(
    {
        "pgbouncer",
        "connection_limit",
        "pool_timeout",
        "schema",
        "statement_cache_size",
        "socket_timeout",
    }
)

# Errors a probe may end with; anything else is a bug and propagates.
PROBE_FAILURES: tuple[type[BaseException], ...] = (
    psycopg.Error,
    pymysql.err.MySQLError,
    PyMongoError,
    ProbeError,
    OSError,  # includes TimeoutError, socket.gaierror, ConnectionRefusedError
)


class ConnectionHandle:
    """
    The live connection of one probe, shared by the worker and the deadline.

    The worker attaches the driver connection once it exists; the deadline may
    abort at any time. close() is idempotent and safe from either thread.
    """

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        self.connected = False
        self._lock = threading.Lock()
        self._conn: Any = None
        self._interrupt: Callable[[], Any] | None = None
        self._aborted = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(
        self,
        conn: Any,
        *,
        established: bool = True,
        interrupt: Callable[[], Any] | None = None,
    ) -> None:
        """
        Register conn. If the deadline already fired, close it and stop.

        interrupt, when given, is how the deadline stops an in-flight command
        (e.g. a server-side cancel) before the worker closes the connection.
        """
        with self._lock:
            aborted = self._aborted
            if not aborted:
                self._conn = conn
                self._interrupt = interrupt
                self.connected = established
        if aborted:
            self._close_conn(conn)
            raise ProbeTimeoutError(self.timeout_ms)

    def mark_established(self) -> None:
        with self._lock:
            self.connected = True

    def abort(self) -> None:
        """Called by the deadline: interrupt the command, or close outright."""
        with self._lock:
            self._aborted = True
            conn, interrupt = self._conn, self._interrupt
        if conn is None:
            return
        if interrupt is None:
            self.close()
            return
        try:
            interrupt()
        except Exception as e:
            _log.warning("Probe interrupt failed, closing instead: %s", e)
            self.close()

    def close(self) -> None:
        with self._lock:
            conn = self._conn
            if conn is None or self._closed:
                return
            self._closed = True
        self._close_conn(conn)

    @staticmethod
    def _close_conn(conn: Any) -> None:
        try:
            conn.close()
        except Exception as e:
            _log.warning("Error closing probe connection: %s", e)


def _timeout_seconds(timeout_ms: int) -> float:
    return max(timeout_ms, 1) / 1000


def _option_keys(descriptor: ConnectionDescriptor) -> set[str]:
    return {k.lower() for k, _ in descriptor.options}


def libpq_url(connection_string: str) -> str:
    """connection_string without the query parameters libpq would reject."""
    parts = urlsplit(connection_string)
    if not parts.query:
        return connection_string
    params = parse_qsl(parts.query, keep_blank_values=True)
    query = [(k, v) for k, v in params if k.lower() not in NON_LIBPQ_PARAMS]
    if len(query) == len(params):
        return connection_string
    return urlunsplit(parts._replace(query=urlencode(query)))


def probe_postgres(
    descriptor: ConnectionDescriptor, timeout_ms: int, handle: ConnectionHandle
) -> int:
    """postgresql and supabase: libpq connect, SELECT 1."""
    kwargs: dict[str, Any] = {
        # libpq takes whole seconds
        "connect_timeout": max(1, math.ceil(timeout_ms / 1000)),
        "autocommit": True,
    }
    if descriptor.tls_required and "sslmode" not in _option_keys(descriptor):
        kwargs["sslmode"] = "require"

    with ProbeTimer() as timer:
        conn = psycopg.connect(libpq_url(descriptor.connection_string), **kwargs)
        # cancel() is the thread-safe way to stop a running statement
        handle.attach(conn, interrupt=conn.cancel)
        with conn.cursor() as cur:
            cur.execute(LIVENESS_SQL)
            cur.fetchone()
    return timer.elapsed_ms


def probe_mysql(
    descriptor: ConnectionDescriptor, timeout_ms: int, handle: ConnectionHandle
) -> int:
    """mysql: discrete-field connect, SELECT 1."""
    seconds = _timeout_seconds(timeout_ms)
    kwargs: dict[str, Any] = {
        "host": descriptor.host,
        "port": descriptor.port or 3306,
        "user": descriptor.username or "",
        "password": descriptor.password.get_secret_value(),
        "connect_timeout": seconds,
        "read_timeout": seconds,
        "write_timeout": seconds,
    }
    if descriptor.database:
        kwargs["database"] = descriptor.database
    if descriptor.tls_required:
        # encrypted transport without CA verification
        kwargs["ssl"] = {"check_hostname": False}

    with ProbeTimer() as timer:
        conn = pymysql.connect(**kwargs)
        handle.attach(conn)
        with conn.cursor() as cur:
            cur.execute(LIVENESS_SQL)
            cur.fetchone()
    return timer.elapsed_ms


def probe_mongodb(
    descriptor: ConnectionDescriptor, timeout_ms: int, handle: ConnectionHandle
) -> int:
    """mongodb: admin ping; the named database need not exist."""
    ms = max(timeout_ms, 1)
    kwargs: dict[str, Any] = {
        "connectTimeoutMS": ms,
        "serverSelectionTimeoutMS": ms,
        "socketTimeoutMS": ms,
        "maxPoolSize": 1,
    }
    if descriptor.tls_required and not _option_keys(descriptor) & {"tls", "ssl"}:
        kwargs["tls"] = True

    with ProbeTimer() as timer:
        client = MongoClient(descriptor.connection_string, **kwargs)
        # the client connects lazily; nothing is established until the ping
        handle.attach(client, established=False)
        try:
            client.admin.command("ping")
        except OperationFailure:
            # the server answered, so a session was opened
            handle.mark_established()
            raise
    return timer.elapsed_ms


Prober = Callable[[ConnectionDescriptor, int, ConnectionHandle], int]

PROBERS: dict[EngineKind, Prober] = {
    EngineKind.POSTGRESQL: probe_postgres,
    EngineKind.SUPABASE: probe_postgres,
    EngineKind.MYSQL: probe_mysql,
    EngineKind.MONGODB: probe_mongodb,
}


class ProbeWorker(threading.Thread):
    """
    Runs one prober body on its own daemon thread.

    A worker stuck in a driver call cannot delay other probes: every probe gets
    a fresh thread, and the caller stops waiting at its deadline.
    """

    def __init__(
        self,
        prober: Prober,
        descriptor: ConnectionDescriptor,
        timeout_ms: int,
        handle: ConnectionHandle,
    ) -> None:
        super().__init__(name=f"probe-{descriptor.kind.value}", daemon=True)
        self.prober = prober
        self.descriptor = descriptor
        self.timeout_ms = timeout_ms
        self.handle = handle
        self.latency_ms: int | None = None
        self.error: BaseException | None = None

    def run(self) -> None:
        try:
            self.latency_ms = self.prober(self.descriptor, self.timeout_ms, self.handle)
        except BaseException as e:  # re-raised or normalized by the caller
            self.error = e
        finally:
            self.handle.close()


def run_probe(
    descriptor: ConnectionDescriptor, timeout_ms: int | None = None
) -> ProbeResult:
    """
    Probe descriptor once under a single deadline and normalize the outcome.

    Never raises for network, auth, protocol or timeout conditions. On
    deadline expiry the connection is interrupted/closed and the result is
    Timeout.
    """
    timeout_ms = timeout_ms or settings.PROBE_TIMEOUT_MS
    kind = descriptor.kind
    prober = PROBERS.get(kind)
    if prober is None:
        return ProbeResult.failed(
            kind, ErrorKind.UNSUPPORTED_ENGINE, f"Unsupported database type: {kind.value}"
        )

    handle = ConnectionHandle(timeout_ms)
    worker = ProbeWorker(prober, descriptor, timeout_ms, handle)
    timer = ProbeTimer()
    timer.start()
    worker.start()
    worker.join((timeout_ms + DEADLINE_SLACK_MS) / 1000)
    outcome: Any
    if worker.is_alive():
        handle.abort()
        worker.join(ABORT_GRACE_SECONDS)
        if worker.is_alive():
            handle.close()
        outcome = ProbeTimeoutError(timeout_ms)
    elif worker.error is not None:
        if not isinstance(worker.error, PROBE_FAILURES):
            raise worker.error
        outcome = worker.error
    else:
        outcome = worker.latency_ms
    elapsed = timer.stop()

    result = normalize(
        outcome,
        kind,
        latency_ms=elapsed,
        connected=handle.connected,
        secrets=descriptor.secrets(),
    )
    log_probe(
        descriptor.redacted_url(),
        kind.value,
        result.success,
        latency_ms=result.latency_ms,
        error_kind=result.error_kind.value if result.error_kind else None,
        error=None if result.success else result.message,
    )
    return result
