"""Configuration models for the file system adapter."""

from pathlib import Path

from pydantic import Field, field_validator

from ..models.framework import AdapterConfig


class Permissions(AdapterConfig):
    """Fine-grained permissions granted inside the base path."""

    read: bool = Field(default=True, description="Read, list, stat and watch")
    write: bool = Field(default=False, description="Overwrite existing files")
    delete: bool = Field(default=False, description="Delete files and directories")
    create: bool = Field(default=False, description="Create files and directories")


class FileSystemConfig(AdapterConfig):
    """Configuration for the file system adapter."""

    base_path: Path = Field(..., description="Root directory of the sandbox")
    permissions: Permissions = Field(
        default_factory=Permissions, description="Granted permissions"
    )
    allowed_extensions: tuple[str, ...] | None = Field(
        default=None,
        description="Allowed file extensions (e.g. '.gcode'); None allows all",
    )
    max_file_size: int | None = Field(
        default=None, gt=0, description="Maximum file size in bytes"
    )

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if v is None:
            return None
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                raise ValueError("Extensions cannot be empty")
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return tuple(normalized)
