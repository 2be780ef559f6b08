"""Sandboxed file system adapter."""

from .adapter import FileSystemAdapter, FileSystemVerb, resolve_within
from .config import FileSystemConfig, Permissions
from .store import LocalFileStore

__all__ = [
    "FileSystemAdapter",
    "FileSystemVerb",
    "FileSystemConfig",
    "Permissions",
    "LocalFileStore",
    "resolve_within",
]
