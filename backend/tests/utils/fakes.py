"""Test doubles for driver connections used by the probers."""

import threading
from typing import Any


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self.conn = conn

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def execute(self, sql: str) -> None:
        self.conn.executed.append(sql)
        if self.conn.block:
            # hang like a stuck server until cancelled or closed
            self.conn.released.wait(10)
            raise TimeoutError("statement interrupted")
        if self.conn.execute_error is not None:
            raise self.conn.execute_error

    def fetchone(self) -> tuple[int]:
        return (1,)


class FakeConnection:
    """psycopg/pymysql-like connection recording liveness and close calls."""

    def __init__(
        self, *, execute_error: BaseException | None = None, block: bool = False
    ) -> None:
        self.execute_error = execute_error
        self.block = block
        self.executed: list[str] = []
        self.closed = False
        self.cancelled = False
        self.close_calls = 0
        self.released = threading.Event()

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def cancel(self) -> None:
        self.cancelled = True
        self.released.set()

    def close(self) -> None:
        self.closed = True
        self.close_calls += 1
        self.released.set()


class _FakeAdminDb:
    def __init__(self, client: "FakeMongoClient") -> None:
        self.client = client

    def command(self, name: str) -> dict[str, Any]:
        self.client.commands.append(("admin", name))
        if self.client.command_error is not None:
            raise self.client.command_error
        return {"ok": 1.0}


class FakeMongoClient:
    """MongoClient double: records the URI, options and admin commands."""

    instances: list["FakeMongoClient"] = []
    command_error: BaseException | None = None

    def __init__(self, uri: str, **kwargs: Any) -> None:
        self.uri = uri
        self.kwargs = kwargs
        self.commands: list[tuple[str, str]] = []
        self.closed = False
        self.admin = _FakeAdminDb(self)
        type(self).instances.append(self)

    def __getitem__(self, name: str) -> Any:
        raise AssertionError(f"probe must not touch database {name!r}")

    def close(self) -> None:
        self.closed = True


def mongo_client_class(command_error: BaseException | None = None) -> type[FakeMongoClient]:
    """A fresh FakeMongoClient subclass with its own instance list."""
    return type(
        "FakeMongoClient",
        (FakeMongoClient,),
        {"instances": [], "command_error": command_error},
    )
