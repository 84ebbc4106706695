"""Unit tests for the connection test dispatcher (string and form payloads)."""

import threading
import time
from unittest.mock import patch

import anyio
import pytest

from app.core.probe import service
from app.core.probe.descriptor import ConnectionDescriptor
from app.core.probe.errors import ProbeValidationError
from app.core.probe.result import ProbeResult
from app.models_probe import EngineKind, ErrorKind
from app.schemas_probe import ConnectionFormIn, ConnectionStringIn


def _ok(descriptor: ConnectionDescriptor, timeout_ms: int | None = None) -> ProbeResult:
    return ProbeResult.ok(descriptor.kind, 7)


def _form(**overrides: object) -> dict[str, object]:
    form: dict[str, object] = {
        "type": "postgresql",
        "host": "localhost",
        "port": 5432,
        "database": "app",
        "username": "admin",
        "password": "secret",
    }
    form.update(overrides)
    return form


def test_detect_type_has_no_side_effects() -> None:
    with patch("app.core.probe.service.run_probe") as run_probe:
        assert service.detect_type("mysql://u:p@h/d") == EngineKind.MYSQL
        assert service.detect_type("ftp://x") == EngineKind.UNKNOWN
    run_probe.assert_not_called()


# --- string path ---


def test_unrecognized_string_never_touches_network() -> None:
    with patch("app.core.probe.service.run_probe") as run_probe:
        result = service.test_connection("redis://localhost:6379")

    run_probe.assert_not_called()
    assert result.success is False
    assert result.engine_kind == EngineKind.UNKNOWN
    assert result.error_kind == ErrorKind.UNSUPPORTED_ENGINE
    assert result.message.startswith("Unsupported database type")


def test_string_is_probed_once_with_detected_kind() -> None:
    with patch("app.core.probe.service.run_probe", side_effect=_ok) as run_probe:
        result = service.test_connection(
            "postgresql://u:p@db.abcd.supabase.co:5432/postgres", timeout_ms=1234
        )

    assert run_probe.call_count == 1
    descriptor, timeout_ms = run_probe.call_args.args
    assert descriptor.kind == EngineKind.SUPABASE
    assert descriptor.connection_string == (
        "postgresql://u:p@db.abcd.supabase.co:5432/postgres"
    )
    assert timeout_ms == 1234
    assert result.success is True
    assert result.engine_kind == EngineKind.SUPABASE


def test_string_payload_variants() -> None:
    url = "mongodb://u:p@localhost:27017/testdb"
    with patch("app.core.probe.service.run_probe", side_effect=_ok) as run_probe:
        service.test_connection(ConnectionStringIn(connection_string=url))
        service.test_connection({"connectionString": url})
    assert run_probe.call_count == 2
    for call in run_probe.call_args_list:
        assert call.args[0].kind == EngineKind.MONGODB


def test_unparseable_string_is_validation_error() -> None:
    with (
        patch("app.core.probe.service.run_probe") as run_probe,
        pytest.raises(ProbeValidationError) as exc_info,
    ):
        service.test_connection("mysql://u:p@h:notaport/d")
    run_probe.assert_not_called()
    assert exc_info.value.fields == ["connectionString"]


# --- form path ---


def test_form_missing_fields_fail_before_probe() -> None:
    with (
        patch("app.core.probe.service.run_probe") as run_probe,
        pytest.raises(ProbeValidationError) as exc_info,
    ):
        service.test_connection(_form(host=None, password=""))
    run_probe.assert_not_called()
    assert exc_info.value.fields == ["host", "password"]


def test_form_unknown_type_is_unsupported_result() -> None:
    with patch("app.core.probe.service.run_probe") as run_probe:
        result = service.test_connection(_form(type="unknown"))
    run_probe.assert_not_called()
    assert result.error_kind == ErrorKind.UNSUPPORTED_ENGINE
    assert result.engine_kind == EngineKind.UNKNOWN


def test_form_unrecognized_type_is_validation_error() -> None:
    with pytest.raises(ProbeValidationError) as exc_info:
        service.test_connection(_form(type="oracle"))
    assert exc_info.value.fields == ["type"]


def test_form_builds_descriptor_for_probe() -> None:
    with patch("app.core.probe.service.run_probe", side_effect=_ok) as run_probe:
        result = service.test_connection(ConnectionFormIn(**_form(type="mysql", port="3306")))

    descriptor = run_probe.call_args.args[0]
    assert descriptor.kind == EngineKind.MYSQL
    assert descriptor.port == 3306
    assert descriptor.password.get_secret_value() == "secret"
    assert result.engine_kind == EngineKind.MYSQL


def test_form_mongo_options_only_for_mongodb() -> None:
    with patch("app.core.probe.service.run_probe", side_effect=_ok) as run_probe:
        service.test_connection(_form(type="mongodb", port=27017, authSource="admin"))
        service.test_connection(_form(authSource="admin"))

    mongo, pg = (call.args[0] for call in run_probe.call_args_list)
    assert mongo.options == (("authSource", "admin"),)
    assert pg.options == ()


def test_repeated_calls_are_independent() -> None:
    with patch("app.core.probe.service.run_probe", side_effect=_ok) as run_probe:
        first = service.test_connection(_form())
        second = service.test_connection(_form())
    assert first == second
    assert run_probe.call_count == 2


def test_unsupported_payload_type() -> None:
    with pytest.raises(TypeError):
        service.test_connection(42)  # type: ignore[arg-type]


# --- async ---


@pytest.mark.anyio
async def test_async_probes_run_concurrently() -> None:
    barrier = threading.Barrier(3, timeout=5)

    def slow_probe(
        descriptor: ConnectionDescriptor, timeout_ms: int | None = None
    ) -> ProbeResult:
        # every probe must be in flight at the same time to pass the barrier
        barrier.wait()
        return ProbeResult.ok(descriptor.kind, 1)

    results: list[ProbeResult] = []

    async def one(url: str) -> None:
        results.append(await service.atest_connection(url))

    started = time.monotonic()
    with patch("app.core.probe.service.run_probe", side_effect=slow_probe):
        async with anyio.create_task_group() as tg:
            tg.start_soon(one, "postgresql://u:p@a/d")
            tg.start_soon(one, "mysql://u:p@b/d")
            tg.start_soon(one, "mongodb://u:p@c/d")

    assert time.monotonic() - started < 5
    assert sorted(r.engine_kind.value for r in results) == [
        "mongodb",
        "mysql",
        "postgresql",
    ]
    assert all(r.success for r in results)
