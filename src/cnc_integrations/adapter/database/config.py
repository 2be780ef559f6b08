"""Configuration models for the database adapter."""

from pydantic import Field, field_validator, model_validator

from ..models.framework import AdapterConfig


class PoolConfig(AdapterConfig):
    """Connection pool sizing handed to the database client library."""

    min: int = Field(default=1, ge=0, description="Persistent pooled connections")
    max: int = Field(default=10, ge=1, description="Maximum pooled connections")
    idle: int = Field(
        default=300, ge=1, description="Seconds before a pooled connection is recycled"
    )

    @model_validator(mode="after")
    def check_bounds(self) -> "PoolConfig":
        if self.max < self.min:
            raise ValueError("Pool max must be greater than or equal to min")
        return self


class DatabaseConfig(AdapterConfig):
    """Configuration for the database adapter."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(..., description="Database name (file path for SQLite)")
    ssl: bool = Field(default=False, description="Require an encrypted connection")
    pool: PoolConfig = Field(
        default_factory=PoolConfig, description="Connection pool sizing"
    )
    dialect: str = Field(
        default="postgresql+asyncpg",
        description="SQLAlchemy dialect and async driver name",
    )
    url: str | None = Field(
        default=None, description="Full database URL overriding the fields above"
    )
    echo: bool = Field(default=False, description="Log every SQL statement")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("Port must be between 1 and 65535")
        return v
