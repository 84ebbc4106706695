"""
Database connectivity endpoints.

Endpoints: types, test (connection string or form), test/detect.
Probe failures are 200 with success=false; only request-shape problems
(missing fields, bad token, malformed JSON) get a non-200 status.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Query

from app.api.deps import CurrentUser
from app.core.probe import ProbeResult, detect_type, test_connection
from app.models_probe import SUPPORTED_ENGINE_KINDS
from app.schemas_probe import (
    DatabaseDetectOut,
    DatabaseTestIn,
    DatabaseTestOut,
    ValidationErrorOut,
)

router = APIRouter(prefix="/database", tags=["database"])

DATABASE_TYPES: list[str] = [kind.value for kind in SUPPORTED_ENGINE_KINDS]


def _to_out(result: ProbeResult) -> DatabaseTestOut:
    """Map a ProbeResult to the response body (error only on failure)."""
    return DatabaseTestOut(
        success=result.success,
        type=result.engine_kind,
        latency_ms=result.latency_ms,
        message=result.message,
        error=None if result.success else result.message,
        error_kind=result.error_kind,
    )


@router.get("/types", response_model=list[str])
def get_types(current_user: CurrentUser) -> Any:  # noqa: ARG001
    """List the database types that can be tested."""
    return DATABASE_TYPES


@router.post(
    "/test",
    response_model=DatabaseTestOut,
    response_model_exclude_none=True,
    responses={400: {"model": ValidationErrorOut}},
)
def test_database(
    current_user: CurrentUser,  # noqa: ARG001
    body: DatabaseTestIn,
) -> Any:
    """
    Test a database connection.

    Body is either {connectionString} (engine auto-detected) or
    {type, host, port, database, username, password}.
    """
    result = test_connection(body.to_payload())
    return _to_out(result)


@router.get("/test/detect", response_model=DatabaseDetectOut)
def detect_database_type(
    current_user: CurrentUser,  # noqa: ARG001
    connection_string: Annotated[str, Query(alias="connectionString")],
) -> Any:
    """Detect the database type of a connection string (no network access)."""
    return DatabaseDetectOut(type=detect_type(connection_string))
