"""Database integration adapter."""

import logging
import time
from enum import Enum
from typing import Any

from pydantic import Field, field_validator, model_validator
from sqlalchemy import exc as sa_exc

from ...models.api import (
    AdapterError,
    AdapterOperation,
    AdapterType,
    DatabaseCredentials,
)
from ..errors import TransactionAborted
from ..models.framework import IntegrationAdapter, OperationHandler, OperationParams
from .backend import ColumnSpec, DatabaseBackend, SchemaOperation, SQLAlchemyBackend
from .config import DatabaseConfig

logger = logging.getLogger(__name__)

RETRYABLE_CODES = frozenset(
    {"CONNECTION_LOST", "TIMEOUT", "LOCK_TIMEOUT", "DEADLOCK", "CONNECTION_REFUSED"}
)


class DatabaseVerb(str, Enum):
    """Verbs supported by the database adapter."""

    QUERY = "query"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    TRANSACTION = "transaction"
    SCHEMA = "schema"


def _require_entries(v: dict[str, Any], what: str) -> dict[str, Any]:
    if not v:
        raise ValueError(f"{what} cannot be empty")
    return v


class QueryParams(OperationParams):
    sql: str = Field(..., description="SQL statement with :named placeholders")
    params: dict[str, Any] = Field(default_factory=dict, description="Bound values")

    @field_validator("sql")
    @classmethod
    def validate_sql(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("SQL query is required")
        return v


class InsertParams(OperationParams):
    table: str = Field(..., min_length=1, description="Target table")
    data: dict[str, Any] | list[dict[str, Any]] = Field(
        ..., description="Row or rows to insert"
    )

    @field_validator("data")
    @classmethod
    def validate_data(
        cls, v: dict[str, Any] | list[dict[str, Any]]
    ) -> dict[str, Any] | list[dict[str, Any]]:
        rows = v if isinstance(v, list) else [v]
        if not rows or not all(rows):
            raise ValueError("Insert data cannot be empty")
        return v

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self.data if isinstance(self.data, list) else [self.data]


class UpdateParams(OperationParams):
    table: str = Field(..., min_length=1, description="Target table")
    data: dict[str, Any] = Field(..., description="Column values to set")
    where: dict[str, Any] = Field(
        default_factory=dict, description="Equality filter; empty updates every row"
    )

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: dict[str, Any]) -> dict[str, Any]:
        return _require_entries(v, "Update data")


class DeleteParams(OperationParams):
    table: str = Field(..., min_length=1, description="Target table")
    where: dict[str, Any] = Field(..., description="Equality filter")

    @field_validator("where")
    @classmethod
    def validate_where(cls, v: dict[str, Any]) -> dict[str, Any]:
        return _require_entries(v, "Delete where clause")


class TransactionParams(OperationParams):
    operations: list[AdapterOperation] = Field(
        ..., description="Operations executed in order, all or nothing"
    )


class SchemaParams(OperationParams):
    operation: SchemaOperation = Field(..., description="Schema operation")
    table: str | None = Field(default=None, description="Target table")
    columns: list[ColumnSpec] = Field(
        default_factory=list, description="Columns to create or add"
    )
    if_exists: bool = Field(
        default=False,
        description="Skip create when present / drop when missing instead of failing",
    )

    @model_validator(mode="after")
    def check_arguments(self) -> "SchemaParams":
        if self.operation != "list_tables" and not self.table:
            raise ValueError(f"Table is required for {self.operation}")
        if self.operation in ("create_table", "alter_table") and not self.columns:
            raise ValueError(f"Columns are required for {self.operation}")
        return self


def database_error_code(exc: Exception) -> str:
    """Derive an error code from a database exception."""
    if isinstance(exc, (sa_exc.TimeoutError, TimeoutError)):
        return "TIMEOUT"
    if isinstance(exc, ConnectionRefusedError):
        return "CONNECTION_REFUSED"
    if isinstance(exc, sa_exc.DBAPIError):
        if exc.connection_invalidated:
            return "CONNECTION_LOST"
        if isinstance(exc.orig, ConnectionRefusedError):
            return "CONNECTION_REFUSED"

    message = str(exc).lower()
    if "deadlock" in message:
        return "DEADLOCK"
    if "lock wait timeout" in message or "database is locked" in message:
        return "LOCK_TIMEOUT"

    # Driver exceptions may carry their own symbolic code; SQLAlchemy's
    # ``code`` attribute is a documentation link id and is ignored.
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code and not isinstance(exc, sa_exc.SQLAlchemyError):
        return code
    return "DATABASE_ERROR"


def is_retryable_database_error(code: str, message: str) -> bool:
    """Transient database conditions a caller may retry."""
    lowered = message.lower()
    return code in RETRYABLE_CODES or "timeout" in lowered or "connection" in lowered


class DatabaseAdapter(IntegrationAdapter):
    """Database integration adapter.

    Provides standardized data-store operations on top of a pluggable
    ``DatabaseBackend`` (``SQLAlchemyBackend`` by default).
    """

    adapter_type = AdapterType.DATABASE
    default_id = "database"
    default_name = "Database Adapter"
    version = "1.0.0"
    description = "Generic database integration adapter"
    config_class = DatabaseConfig
    connection_prefix = "db"
    backend_label = "database"

    config: DatabaseConfig | None

    def __init__(
        self,
        backend: DatabaseBackend | None = None,
        adapter_id: str | None = None,
        name: str | None = None,
    ):
        super().__init__(adapter_id=adapter_id, name=name)
        self.backend = backend or SQLAlchemyBackend()

    def _operations(self) -> dict[str, tuple[type[OperationParams], OperationHandler]]:
        return {
            DatabaseVerb.QUERY.value: (QueryParams, self._query),
            DatabaseVerb.INSERT.value: (InsertParams, self._insert),
            DatabaseVerb.UPDATE.value: (UpdateParams, self._update),
            DatabaseVerb.DELETE.value: (DeleteParams, self._delete),
            DatabaseVerb.TRANSACTION.value: (TransactionParams, self._transaction),
            DatabaseVerb.SCHEMA.value: (SchemaParams, self._schema),
        }

    # Session hooks

    async def _open(self, credentials: Any) -> dict[str, Any]:
        assert self.config is not None
        creds = None
        if credentials is not None:
            creds = DatabaseCredentials.model_validate(credentials)

        backend_info = await self.backend.open(self.config, creds)
        logger.info(
            f"Connected to database: {self.config.host}:{self.config.port}/"
            f"{self.config.database}"
        )
        return {
            "database": self.config.database,
            "host": self.config.host,
            "port": self.config.port,
            **backend_info,
        }

    async def _close(self) -> None:
        await self.backend.close()

    async def _check_health(self) -> bool:
        await self.backend.ping()
        return True

    async def _measure_latency(self) -> float | None:
        start_time = time.perf_counter()
        await self.backend.ping()
        return (time.perf_counter() - start_time) * 1000

    def _status_metadata(self) -> dict[str, Any]:
        metadata = super()._status_metadata()
        if self.config is not None:
            metadata.update(
                database=self.config.database,
                host=self.config.host,
                port=self.config.port,
                dialect=self.config.dialect,
            )
        return metadata

    def _classify_error(self, exc: Exception) -> AdapterError:
        code = database_error_code(exc)
        message = str(exc) or type(exc).__name__
        return AdapterError(
            code=code,
            message=message,
            details={
                "exception": type(exc).__name__,
                "statement": getattr(exc, "statement", None),
            },
            retryable=is_retryable_database_error(code, message),
        )

    # Verb handlers

    async def _query(self, params: QueryParams) -> dict[str, Any]:
        logger.debug(f"Executing query: {params.sql}")
        return await self.backend.query(params.sql, params.params)

    async def _insert(self, params: InsertParams) -> dict[str, Any]:
        logger.debug(f"Inserting into table: {params.table}")
        return await self.backend.insert(params.table, params.rows)

    async def _update(self, params: UpdateParams) -> dict[str, Any]:
        logger.debug(f"Updating table: {params.table}")
        return await self.backend.update(params.table, params.data, params.where)

    async def _delete(self, params: DeleteParams) -> dict[str, Any]:
        logger.debug(f"Deleting from table: {params.table}")
        return await self.backend.delete(params.table, params.where)

    async def _transaction(self, params: TransactionParams) -> dict[str, Any]:
        logger.debug(
            f"Executing transaction with {len(params.operations)} operations"
        )
        results = []
        async with self.backend.transaction():
            for index, operation in enumerate(params.operations):
                result = await self.execute(operation)
                results.append(result)
                if not result.success:
                    assert result.error is not None
                    raise TransactionAborted(result.error, index)

        return {
            "results": [result.model_dump() for result in results],
            "operation_count": len(results),
            "command": "TRANSACTION",
        }

    async def _schema(self, params: SchemaParams) -> dict[str, Any]:
        logger.debug(f"Executing schema operation: {params.operation}")
        return await self.backend.schema(
            params.operation, params.table, params.columns, params.if_exists
        )
