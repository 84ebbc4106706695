"""
Probe enums: database engine kinds and probe error kinds.

EngineKind values are the wire values used by the HTTP payloads ("type").
"""

from enum import Enum


class EngineKind(str, Enum):
    """Database engine families the connectivity tester can address."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MONGODB = "mongodb"
    SUPABASE = "supabase"  # Postgres-compatible, TLS required
    UNKNOWN = "unknown"


# Kinds with a prober; UNKNOWN is terminal.
SUPPORTED_ENGINE_KINDS: tuple[EngineKind, ...] = (
    EngineKind.POSTGRESQL,
    EngineKind.MYSQL,
    EngineKind.MONGODB,
    EngineKind.SUPABASE,
)

# Engines that speak the Postgres wire protocol.
POSTGRES_FAMILY: frozenset[EngineKind] = frozenset(
    {EngineKind.POSTGRESQL, EngineKind.SUPABASE}
)

DEFAULT_PORTS: dict[EngineKind, int] = {
    EngineKind.POSTGRESQL: 5432,
    EngineKind.SUPABASE: 5432,
    EngineKind.MYSQL: 3306,
    EngineKind.MONGODB: 27017,
}

# Supabase transaction pooler (pgbouncer=true) listens on 6543.
SUPABASE_POOLER_PORT = 6543


class ErrorKind(str, Enum):
    """Uniform failure classes for a probe, independent of the engine."""

    VALIDATION = "ValidationError"
    UNSUPPORTED_ENGINE = "UnsupportedEngine"
    TIMEOUT = "Timeout"
    AUTHENTICATION = "AuthenticationFailure"
    NETWORK = "NetworkUnreachable"
    PROTOCOL = "ProtocolError"
