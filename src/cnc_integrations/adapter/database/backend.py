"""Backend seam for the database adapter.

``DatabaseBackend`` is the narrow interface the adapter delegates to; the
production implementation runs on SQLAlchemy's asyncio extension and leaves
pooling and wire protocol to SQLAlchemy and the installed driver.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Literal

from pydantic import BaseModel, Field
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    column,
    delete,
    insert,
    inspect,
    table,
    text,
    update,
)
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ...models.api import DatabaseCredentials
from .config import DatabaseConfig

logger = logging.getLogger(__name__)

ColumnType = Literal[
    "integer",
    "bigint",
    "string",
    "text",
    "float",
    "numeric",
    "boolean",
    "date",
    "datetime",
    "json",
]

COLUMN_TYPES: dict[str, Any] = {
    "integer": Integer,
    "bigint": BigInteger,
    "string": String,
    "text": Text,
    "float": Float,
    "numeric": Numeric,
    "boolean": Boolean,
    "date": Date,
    "datetime": DateTime,
    "json": JSON,
}

SchemaOperation = Literal[
    "create_table", "drop_table", "alter_table", "describe_table", "list_tables"
]


class ColumnSpec(BaseModel):
    """Column definition used by schema operations."""

    name: str = Field(..., min_length=1, description="Column name")
    type: ColumnType = Field(default="string", description="Portable column type")
    primary_key: bool = Field(default=False, description="Part of the primary key")
    nullable: bool = Field(default=True, description="Whether NULL is allowed")


class DatabaseBackend(ABC):
    """Performs database verbs against a real store and raises on failure."""

    @abstractmethod
    async def open(
        self, config: DatabaseConfig, credentials: DatabaseCredentials | None
    ) -> dict[str, Any]:
        """Open the connection pool and verify it with one round trip."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def ping(self) -> None:
        pass

    @abstractmethod
    async def query(self, sql: str, params: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def insert(self, table_name: str, rows: list[dict[str, Any]]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update(
        self, table_name: str, values: dict[str, Any], where: dict[str, Any]
    ) -> dict[str, Any]:
        pass

    @abstractmethod
    async def delete(self, table_name: str, where: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def schema(
        self,
        operation: SchemaOperation,
        table_name: str | None,
        columns: list[ColumnSpec],
        if_exists: bool = False,
    ) -> dict[str, Any]:
        pass

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Scope in which every verb runs on one connection.

        Leaving the scope with an exception rolls back everything done inside
        it; nested scopes use savepoints.
        """
        pass


def build_url(
    config: DatabaseConfig, credentials: DatabaseCredentials | None
) -> URL:
    """Build the SQLAlchemy URL for a configuration and credentials."""
    if config.url:
        url = make_url(config.url)
        if credentials and url.username is None and url.get_backend_name() != "sqlite":
            url = url.set(username=credentials.username, password=credentials.password)
        return url

    if config.dialect.startswith("sqlite"):
        return URL.create(config.dialect, database=config.database)

    return URL.create(
        config.dialect,
        username=credentials.username if credentials else None,
        password=credentials.password if credentials else None,
        host=config.host,
        port=config.port,
        database=config.database,
    )


class SQLAlchemyBackend(DatabaseBackend):
    """Database backend on ``sqlalchemy.ext.asyncio``."""

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._conn: AsyncConnection | None = None

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    async def open(
        self, config: DatabaseConfig, credentials: DatabaseCredentials | None
    ) -> dict[str, Any]:
        url = build_url(config, credentials)
        engine_kwargs: dict[str, Any] = {"echo": config.echo, "pool_pre_ping": True}

        if url.get_backend_name() == "sqlite":
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise every checkout sees a new database
                engine_kwargs.update(
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
        else:
            engine_kwargs.update(
                pool_size=config.pool.min,
                max_overflow=config.pool.max - config.pool.min,
                pool_recycle=config.pool.idle,
            )
            if config.ssl:
                engine_kwargs["connect_args"] = {"ssl": True}

        engine = create_async_engine(url, **engine_kwargs)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            await engine.dispose()
            raise

        self._engine = engine
        logger.debug(f"Opened database engine for {url.render_as_string()}")
        return {"dialect": engine.dialect.name, "database": url.database}

    async def close(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        self._conn = None
        await engine.dispose()

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        if self._conn is not None:
            yield self._conn
            return
        if self._engine is None:
            raise RuntimeError("Database engine is not open")
        async with self._engine.begin() as conn:
            yield conn

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        if self._conn is not None:
            async with self._conn.begin_nested():
                yield
            return
        if self._engine is None:
            raise RuntimeError("Database engine is not open")
        async with self._engine.connect() as conn:
            async with conn.begin():
                self._conn = conn
                try:
                    yield
                finally:
                    self._conn = None

    def transaction(self) -> AbstractAsyncContextManager[None]:
        return self._transaction()

    async def ping(self) -> None:
        async with self._connection() as conn:
            await conn.execute(text("SELECT 1"))

    async def query(self, sql: str, params: dict[str, Any]) -> dict[str, Any]:
        command = sql.split(None, 1)[0].upper()
        async with self._connection() as conn:
            result = await conn.execute(text(sql), params)
            if result.returns_rows:
                fields = list(result.keys())
                rows = [dict(row) for row in result.mappings()]
                return {
                    "rows": rows,
                    "row_count": len(rows),
                    "fields": fields,
                    "command": command,
                }
            return {
                "rows": [],
                "row_count": result.rowcount,
                "fields": [],
                "command": command,
            }

    async def insert(self, table_name: str, rows: list[dict[str, Any]]) -> dict[str, Any]:
        names = sorted({name for row in rows for name in row})
        target = table(table_name, *(column(name) for name in names))
        async with self._connection() as conn:
            await conn.execute(insert(target), rows)
        return {"row_count": len(rows), "command": "INSERT"}

    async def update(
        self, table_name: str, values: dict[str, Any], where: dict[str, Any]
    ) -> dict[str, Any]:
        target = table(table_name, *(column(name) for name in {*values, *where}))
        stmt = update(target).values(**values)
        if where:
            stmt = stmt.where(*(target.c[name] == value for name, value in where.items()))
        async with self._connection() as conn:
            result = await conn.execute(stmt)
        return {"row_count": result.rowcount, "command": "UPDATE"}

    async def delete(self, table_name: str, where: dict[str, Any]) -> dict[str, Any]:
        target = table(table_name, *(column(name) for name in where))
        stmt = delete(target).where(
            *(target.c[name] == value for name, value in where.items())
        )
        async with self._connection() as conn:
            result = await conn.execute(stmt)
        return {"row_count": result.rowcount, "command": "DELETE"}

    async def schema(
        self,
        operation: SchemaOperation,
        table_name: str | None,
        columns: list[ColumnSpec],
        if_exists: bool = False,
    ) -> dict[str, Any]:
        async with self._connection() as conn:
            if operation == "list_tables":
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
                return {"tables": tables, "command": "LIST TABLES"}

            if operation == "describe_table":
                described = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_columns(table_name)
                )
                return {
                    "table_name": table_name,
                    "columns": [
                        {
                            "name": col["name"],
                            "type": str(col["type"]),
                            "nullable": col.get("nullable", True),
                            "primary_key": bool(col.get("primary_key")),
                        }
                        for col in described
                    ],
                    "command": "DESCRIBE TABLE",
                }

            if operation == "create_table":
                new_table = Table(
                    table_name,
                    MetaData(),
                    *(
                        Column(
                            spec.name,
                            COLUMN_TYPES[spec.type],
                            primary_key=spec.primary_key,
                            nullable=spec.nullable,
                        )
                        for spec in columns
                    ),
                )
                await conn.run_sync(
                    lambda sync_conn: new_table.create(sync_conn, checkfirst=if_exists)
                )
                return {"table_name": table_name, "command": "CREATE TABLE"}

            if operation == "drop_table":
                old_table = Table(table_name, MetaData())
                await conn.run_sync(
                    lambda sync_conn: old_table.drop(sync_conn, checkfirst=if_exists)
                )
                return {"table_name": table_name, "command": "DROP TABLE"}

            # alter_table
            quote = conn.dialect.identifier_preparer.quote
            for spec in columns:
                column_type = COLUMN_TYPES[spec.type]().compile(dialect=conn.dialect)
                ddl = (
                    f"ALTER TABLE {quote(table_name)} "
                    f"ADD COLUMN {quote(spec.name)} {column_type}"
                )
                if not spec.nullable:
                    ddl += " NOT NULL"
                await conn.execute(text(ddl))
            return {
                "table_name": table_name,
                "added_columns": [spec.name for spec in columns],
                "command": "ALTER TABLE",
            }
