"""
Engine detection from an opaque connection string.

Pure and side-effect free: only the scheme prefix and the host name are
inspected, never the network. Anything ambiguous resolves to UNKNOWN.
"""

from typing import Any
from urllib.parse import urlsplit

from app.models_probe import EngineKind

MONGODB_SCHEMES = ("mongodb://", "mongodb+srv://")
POSTGRES_SCHEMES = ("postgres://", "postgresql://")
MYSQL_SCHEMES = ("mysql://",)

# Managed Postgres host suffixes (db.<ref>.supabase.co, *.pooler.supabase.com).
SUPABASE_HOST_SUFFIXES = ("supabase.co", "supabase.com")


def _host_of(connection_string: str) -> str | None:
    try:
        return urlsplit(connection_string).hostname
    except ValueError:
        return None


def is_supabase_host(host: str | None) -> bool:
    """True if host is (a subdomain of) a known Supabase domain."""
    if not host:
        return False
    host = host.lower().rstrip(".")
    return any(
        host == suffix or host.endswith("." + suffix)
        for suffix in SUPABASE_HOST_SUFFIXES
    )


def detect(connection_string: Any) -> EngineKind:
    """Classify a connection string into an EngineKind. Never raises."""
    if not isinstance(connection_string, str):
        return EngineKind.UNKNOWN
    trimmed = connection_string.strip()
    lowered = trimmed.lower()
    if not lowered:
        return EngineKind.UNKNOWN

    if lowered.startswith(MONGODB_SCHEMES):
        return EngineKind.MONGODB
    if lowered.startswith(POSTGRES_SCHEMES):
        if is_supabase_host(_host_of(trimmed)):
            return EngineKind.SUPABASE
        return EngineKind.POSTGRESQL
    if lowered.startswith(MYSQL_SCHEMES):
        return EngineKind.MYSQL
    return EngineKind.UNKNOWN
