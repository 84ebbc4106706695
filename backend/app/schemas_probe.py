"""
Pydantic schemas for the database connectivity API.

Wire names are camelCase (connectionString, latencyMs); Python attributes are
snake_case. Passwords are SecretStr and never serialized back.
"""

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from app.models_probe import EngineKind, ErrorKind


class ConnectionStringIn(BaseModel):
    """String path: the engine is detected from the connection string."""

    model_config = ConfigDict(populate_by_name=True)

    connection_string: str = Field(..., alias="connectionString")


class ConnectionFormIn(BaseModel):
    """
    Form path: explicit engine kind plus discrete fields.

    Fields are optional here so that missing ones are reported together by the
    descriptor builder (400 with field names) instead of as a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str | None = None
    host: str | None = Field(default=None, max_length=255)
    port: int | str | None = None
    database: str | None = Field(default=None, max_length=255)
    username: str | None = Field(default=None, max_length=255)
    password: SecretStr | None = None
    ssl: bool = Field(default=False, description="Require encrypted transport.")
    auth_source: str | None = Field(
        default=None, alias="authSource", description="MongoDB only."
    )
    replica_set: str | None = Field(
        default=None, alias="replicaSet", description="MongoDB only."
    )

    def mongo_options(self) -> dict[str, str]:
        opts: dict[str, str] = {}
        if self.auth_source:
            opts["authSource"] = self.auth_source
        if self.replica_set:
            opts["replicaSet"] = self.replica_set
        return opts


class DatabaseTestIn(ConnectionFormIn):
    """Body for POST /database/test; connectionString takes precedence."""

    connection_string: str | None = Field(default=None, alias="connectionString")

    def to_payload(self) -> ConnectionStringIn | ConnectionFormIn:
        if self.connection_string:
            return ConnectionStringIn(connection_string=self.connection_string)
        return ConnectionFormIn.model_validate(
            self.model_dump(exclude={"connection_string"})
        )


class DatabaseTestOut(BaseModel):
    """Response for POST /database/test; same shape for every engine."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    type: EngineKind
    latency_ms: int | None = Field(default=None, alias="latencyMs")
    message: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = Field(default=None, alias="errorKind")


class DatabaseDetectOut(BaseModel):
    """Response for GET /database/test/detect."""

    type: EngineKind


class ValidationErrorOut(BaseModel):
    """400 body when required fields are missing or invalid."""

    detail: str
    fields: list[str] = []
