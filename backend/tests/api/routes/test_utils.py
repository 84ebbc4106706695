"""Tests for /api/v1/utils routes (liveness and health-check)."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.health import check_probers, readiness_check


def test_liveness_returns_200(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/liveness/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_200_when_ready(client: TestClient) -> None:
    """GET /health-check/ returns 200 with true when every engine has a prober."""
    r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_503_when_readiness_fails(client: TestClient) -> None:
    """GET /health-check/ returns 503 with envelope when readiness_check fails."""
    with patch(
        "app.api.routes.utils.readiness_check",
        return_value=(False, ["prober_missing:mysql"]),
    ):
        r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 503
    data = r.json()
    assert data.get("success") is False
    assert "data" in data
    assert "prober_missing:mysql" in data["data"]


def test_readiness_reports_missing_prober() -> None:
    with patch.dict("app.core.health.PROBERS", clear=True):
        assert check_probers() == ["postgresql", "mysql", "mongodb", "supabase"]
        ok, failures = readiness_check()
    assert ok is False
    assert "prober_missing:mongodb" in failures
    assert readiness_check() == (True, [])
