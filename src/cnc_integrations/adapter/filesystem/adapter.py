"""File system integration adapter."""

import codecs
import errno
import logging
import os
import stat as stat_module
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from ...models.api import AdapterError, AdapterOperation, AdapterType
from ..errors import (
    AdapterException,
    ExtensionNotAllowedError,
    FileTooLargeError,
    PathSecurityError,
    PermissionDeniedError,
)
from ..models.framework import IntegrationAdapter, OperationHandler, OperationParams
from .config import FileSystemConfig
from .store import LocalFileStore

logger = logging.getLogger(__name__)

WatchEvent = Literal["create", "change", "delete"]

# errno -> (code, retryable)
ERRNO_CODES: dict[int, tuple[str, bool]] = {
    errno.ENOENT: ("FILE_NOT_FOUND", False),
    errno.EACCES: ("PERMISSION_DENIED", False),
    errno.EPERM: ("PERMISSION_DENIED", False),
    errno.EEXIST: ("FILE_EXISTS", False),
    errno.ENOTDIR: ("NOT_A_DIRECTORY", False),
    errno.EISDIR: ("IS_A_DIRECTORY", False),
    errno.ENOTEMPTY: ("DIRECTORY_NOT_EMPTY", False),
    errno.ENOSPC: ("NO_SPACE", True),
    errno.EMFILE: ("TOO_MANY_FILES", True),
    errno.ENFILE: ("TOO_MANY_FILES", True),
}


class FileSystemVerb(str, Enum):
    """Verbs supported by the file system adapter."""

    READ = "read"
    WRITE = "write"
    LIST = "list"
    DELETE = "delete"
    COPY = "copy"
    MOVE = "move"
    MKDIR = "mkdir"
    STAT = "stat"
    WATCH = "watch"


def _check_encoding(v: str | None) -> str | None:
    if v is not None:
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
    return v


class ReadParams(OperationParams):
    file_path: str = Field(..., min_length=1, description="File relative to base path")
    encoding: str | None = Field(
        default="utf-8", description="Text encoding; None returns bytes"
    )
    offset: int = Field(default=0, ge=0, description="Byte offset to start reading")
    length: int | None = Field(default=None, ge=0, description="Bytes to read")

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str | None) -> str | None:
        return _check_encoding(v)


class WriteParams(OperationParams):
    file_path: str = Field(..., min_length=1, description="File relative to base path")
    content: str | bytes = Field(..., description="Content to write")
    encoding: str = Field(default="utf-8", description="Encoding for text content")
    append: bool = Field(default=False, description="Append instead of overwrite")

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str | None) -> str | None:
        return _check_encoding(v)


class ListParams(OperationParams):
    dir_path: str = Field(default="", description="Directory relative to base path")
    recursive: bool = Field(default=False, description="Descend into subdirectories")
    include_stats: bool = Field(default=False, description="Add size and times")


class DeleteParams(OperationParams):
    file_path: str = Field(..., min_length=1, description="Path relative to base path")
    recursive: bool = Field(default=False, description="Delete non-empty directories")


class TransferParams(OperationParams):
    source_path: str = Field(..., min_length=1, description="Source path")
    target_path: str = Field(..., min_length=1, description="Target path")
    overwrite: bool = Field(default=False, description="Replace an existing target")


class MkdirParams(OperationParams):
    dir_path: str = Field(..., min_length=1, description="Directory to create")
    recursive: bool = Field(
        default=False, description="Create parents; existing directory is not an error"
    )


class StatParams(OperationParams):
    file_path: str = Field(..., min_length=1, description="Path relative to base path")


class WatchParams(OperationParams):
    file_path: str | None = Field(default=None, description="Path to watch")
    events: list[WatchEvent] = Field(
        default_factory=lambda: ["change"], description="Events to report"
    )
    watch_id: str | None = Field(
        default=None, description="Existing watch to poll for changes"
    )

    @model_validator(mode="after")
    def check_target(self) -> "WatchParams":
        if not self.file_path and not self.watch_id:
            raise ValueError("File path or watch id is required for watch operation")
        return self


Snapshot = dict[str, tuple[int, int]]


@dataclass
class _Watch:
    path: Path
    relative: str
    events: list[str]
    snapshot: Snapshot
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def resolve_within(base_path: Path, user_path: str) -> Path:
    """Resolve a caller-supplied path inside ``base_path``.

    ``base_path`` must already be resolved. The caller path is rejected when
    it is absolute (POSIX, drive, UNC) or contains ``..``; the joined result
    is then resolved, following symlinks, and must still lie inside the base.

    Raises:
        PathSecurityError: If the path is rejected
    """
    if "\x00" in user_path:
        raise PathSecurityError("Null bytes not allowed in paths")

    windows_path = PureWindowsPath(user_path)
    if (
        PurePosixPath(user_path).is_absolute()
        or windows_path.is_absolute()
        or windows_path.drive
        or windows_path.root
    ):
        raise PathSecurityError("Absolute paths not allowed")

    normalized = os.path.normpath(user_path.replace("\\", "/")) if user_path else "."
    if ".." in user_path or ".." in normalized:
        raise PathSecurityError("Path traversal not allowed")

    candidate = Path(os.path.realpath(base_path / normalized))
    if candidate != base_path and not candidate.is_relative_to(base_path):
        raise PathSecurityError("Path outside of allowed base path")
    return candidate


class FileSystemAdapter(IntegrationAdapter):
    """File system integration adapter.

    Provides sandboxed file operations under a configured base path with
    configurable permissions, an optional extension allow-list and a size
    ceiling. No operation touches a path outside the base path.
    """

    adapter_type = AdapterType.FILE_SYSTEM
    default_id = "file_system"
    default_name = "File System Adapter"
    version = "1.0.0"
    description = "File system integration adapter with security controls"
    config_class = FileSystemConfig
    connection_prefix = "fs"
    backend_label = "file system"

    config: FileSystemConfig | None

    def __init__(
        self,
        store: LocalFileStore | None = None,
        adapter_id: str | None = None,
        name: str | None = None,
    ):
        super().__init__(adapter_id=adapter_id, name=name)
        self.store = store or LocalFileStore()
        self._base: Path | None = None
        self._watches: dict[str, _Watch] = {}

    def _operations(self) -> dict[str, tuple[type[OperationParams], OperationHandler]]:
        return {
            FileSystemVerb.READ.value: (ReadParams, self._read),
            FileSystemVerb.WRITE.value: (WriteParams, self._write),
            FileSystemVerb.LIST.value: (ListParams, self._list),
            FileSystemVerb.DELETE.value: (DeleteParams, self._delete),
            FileSystemVerb.COPY.value: (TransferParams, self._copy),
            FileSystemVerb.MOVE.value: (TransferParams, self._move),
            FileSystemVerb.MKDIR.value: (MkdirParams, self._mkdir),
            FileSystemVerb.STAT.value: (StatParams, self._stat),
            FileSystemVerb.WATCH.value: (WatchParams, self._watch),
        }

    @property
    def base_path(self) -> Path:
        if self._base is None:
            raise PathSecurityError("File system adapter not connected")
        return self._base

    # Session hooks

    async def _open(self, credentials: Any) -> dict[str, Any]:
        assert self.config is not None
        base = Path(os.path.realpath(self.config.base_path.expanduser()))

        if not await self.store.exists(base):
            raise FileNotFoundError(
                errno.ENOENT, f"Base path not accessible: {base}", str(base)
            )
        if not await self.store.is_dir(base):
            raise NotADirectoryError(
                errno.ENOTDIR, f"Base path is not a directory: {base}", str(base)
            )

        self._base = base
        logger.info(f"Connected to file system: {base}")
        return {
            "base_path": str(base),
            "permissions": self.config.permissions.model_dump(),
        }

    async def _close(self) -> None:
        self._watches.clear()
        self._base = None

    async def _check_health(self) -> bool:
        return await self.store.is_dir(self.base_path)

    async def _admit(self, operation: AdapterOperation) -> None:
        # No persistent session, so every operation counts as activity
        self.connection_count += 1

    def _status_metadata(self) -> dict[str, Any]:
        metadata = super()._status_metadata()
        if self.config is not None:
            metadata.update(
                base_path=str(self.config.base_path),
                permissions=self.config.permissions.model_dump(),
                allowed_extensions=(
                    list(self.config.allowed_extensions)
                    if self.config.allowed_extensions is not None
                    else None
                ),
                active_watches=len(self._watches),
            )
        return metadata

    def _classify_error(self, exc: Exception) -> AdapterError:
        if isinstance(exc, OSError) and exc.errno is not None:
            code, retryable = ERRNO_CODES.get(exc.errno, ("FILE_SYSTEM_ERROR", False))
            return AdapterError(
                code=code,
                message=exc.strerror or str(exc),
                details={
                    "errno": exc.errno,
                    "errno_name": errno.errorcode.get(exc.errno),
                    "path": self._display_path(exc.filename),
                },
                retryable=retryable,
            )
        if isinstance(exc, UnicodeError):
            return AdapterError(
                code="ENCODING_ERROR",
                message=str(exc),
                details={"exception": type(exc).__name__},
                retryable=False,
            )
        return AdapterError(
            code="FILE_SYSTEM_ERROR",
            message=str(exc) or type(exc).__name__,
            details={"exception": type(exc).__name__},
            retryable=False,
        )

    # Policy checks

    def _require(self, *flags: str) -> None:
        assert self.config is not None
        permissions = self.config.permissions
        missing = [flag for flag in flags if not getattr(permissions, flag)]
        if missing:
            if len(flags) == 1:
                raise PermissionDeniedError(f"{flags[0].capitalize()} permission denied")
            raise PermissionDeniedError(
                f"{' and '.join(f.capitalize() for f in flags)} permissions required"
            )

    def _resolve(self, user_path: str) -> Path:
        return resolve_within(self.base_path, user_path)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.base_path).as_posix()

    def _display_path(self, filename: Any) -> str | None:
        if filename is None:
            return None
        try:
            return self._relative(Path(filename))
        except (ValueError, PathSecurityError):
            return str(filename)

    def _check_extension(self, path: Path) -> None:
        assert self.config is not None
        allowed = self.config.allowed_extensions
        if allowed is None:
            return
        ext = path.suffix.lower()
        if ext not in allowed:
            raise ExtensionNotAllowedError(
                f"File extension not allowed: {ext or '(none)'}",
                details={"extension": ext, "allowed": list(allowed)},
            )

    def _check_size(self, size: int, what: str) -> None:
        assert self.config is not None
        limit = self.config.max_file_size
        if limit is not None and size > limit:
            raise FileTooLargeError(
                f"{what} too large: {size} > {limit}",
                details={"size": size, "max_file_size": limit},
            )

    # Verb handlers

    async def _read(self, params: ReadParams) -> dict[str, Any]:
        self._require("read")
        path = self._resolve(params.file_path)
        self._check_extension(path)

        logger.debug(f"Reading file: {path}")
        info = await self.store.stat(path)
        if not stat_module.S_ISREG(info.st_mode):
            raise AdapterException("Path is not a file", code="NOT_A_FILE")
        self._check_size(info.st_size, "File")

        raw = await self.store.read(path, params.offset, params.length)
        content: str | bytes = raw if params.encoding is None else raw.decode(params.encoding)

        return {
            "content": content,
            "path": params.file_path,
            "size": info.st_size,
            "modified": _timestamp(info.st_mtime),
            "encoding": params.encoding,
        }

    async def _write(self, params: WriteParams) -> dict[str, Any]:
        assert self.config is not None
        permissions = self.config.permissions
        if not (permissions.write or permissions.create):
            raise PermissionDeniedError("Write permission denied")

        path = self._resolve(params.file_path)
        self._check_extension(path)

        exists = await self.store.exists(path)
        if exists and not permissions.write:
            raise PermissionDeniedError(
                "Cannot overwrite existing file: write permission denied"
            )
        if not exists and not permissions.create:
            raise PermissionDeniedError(
                "Cannot create new file: create permission denied"
            )

        data = (
            params.content
            if isinstance(params.content, bytes)
            else params.content.encode(params.encoding)
        )
        self._check_size(len(data), "Content")
        if params.append and exists:
            current = await self.store.stat(path)
            self._check_size(current.st_size + len(data), "File")

        logger.debug(f"Writing file: {path}")
        await self.store.write(path, data, append=params.append)
        info = await self.store.stat(path)

        return {
            "path": params.file_path,
            "size": info.st_size,
            "modified": _timestamp(info.st_mtime),
            "created": not exists,
        }

    async def _list(self, params: ListParams) -> dict[str, Any]:
        self._require("read")
        path = self._resolve(params.dir_path)

        logger.debug(f"Listing directory: {path}")
        entries = await self._list_entries(path, params.recursive, params.include_stats)
        return {"path": params.dir_path, "entries": entries, "count": len(entries)}

    async def _list_entries(
        self, path: Path, recursive: bool, include_stats: bool
    ) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        for entry_name, is_dir in await self.store.list_dir(path):
            entry_path = path / entry_name
            relative = self._relative(entry_path)
            try:
                self._resolve(relative)
            except PathSecurityError:
                logger.debug(f"Skipping entry outside base path: {relative}")
                continue
            item: dict[str, Any] = {
                "name": entry_name,
                "path": relative,
                "type": "directory" if is_dir else "file",
            }
            if include_stats:
                info = await self.store.stat(entry_path)
                item.update(
                    size=info.st_size,
                    modified=_timestamp(info.st_mtime),
                    created=_timestamp(getattr(info, "st_birthtime", info.st_ctime)),
                )
            entries.append(item)

            if recursive and is_dir:
                try:
                    # Re-resolve so symlinked directories cannot lead outside
                    subdir = self._resolve(relative)
                    entries.extend(
                        await self._list_entries(subdir, recursive, include_stats)
                    )
                except (OSError, AdapterException) as e:
                    logger.warning(f"Error listing subdirectory {relative}: {e}")
        return entries

    async def _delete(self, params: DeleteParams) -> dict[str, Any]:
        self._require("delete")
        path = self._resolve(params.file_path)
        if path == self.base_path:
            raise PathSecurityError("Cannot delete the base path")

        logger.debug(f"Deleting: {path}")
        info = await self.store.stat(path)
        is_dir = stat_module.S_ISDIR(info.st_mode)
        if is_dir:
            await self.store.remove_dir(path, recursive=params.recursive)
        else:
            await self.store.remove_file(path)

        return {
            "path": params.file_path,
            "type": "directory" if is_dir else "file",
            "deleted": True,
        }

    async def _check_target(self, target: Path, overwrite: bool) -> None:
        if not overwrite and await self.store.exists(target):
            raise AdapterException(
                "Target file exists and overwrite is false", code="FILE_EXISTS"
            )

    async def _copy(self, params: TransferParams) -> dict[str, Any]:
        self._require("read", "create")
        source = self._resolve(params.source_path)
        target = self._resolve(params.target_path)
        self._check_extension(source)
        self._check_extension(target)

        logger.debug(f"Copying: {source} -> {target}")
        await self._check_target(target, params.overwrite)
        await self.store.copy(source, target)
        info = await self.store.stat(target)

        return {
            "source_path": params.source_path,
            "target_path": params.target_path,
            "size": info.st_size,
            "copied": True,
        }

    async def _move(self, params: TransferParams) -> dict[str, Any]:
        self._require("write", "delete")
        source = self._resolve(params.source_path)
        target = self._resolve(params.target_path)
        if source == self.base_path:
            raise PathSecurityError("Cannot move the base path")
        # Directories carry no extension
        if not await self.store.is_dir(source):
            self._check_extension(target)

        logger.debug(f"Moving: {source} -> {target}")
        await self._check_target(target, params.overwrite)
        await self.store.move(source, target)

        return {
            "source_path": params.source_path,
            "target_path": params.target_path,
            "moved": True,
        }

    async def _mkdir(self, params: MkdirParams) -> dict[str, Any]:
        self._require("create")
        path = self._resolve(params.dir_path)

        logger.debug(f"Creating directory: {path}")
        await self.store.mkdir(path, parents=params.recursive)
        return {"path": params.dir_path, "created": True}

    async def _stat(self, params: StatParams) -> dict[str, Any]:
        self._require("read")
        path = self._resolve(params.file_path)

        logger.debug(f"Getting stats: {path}")
        info = await self.store.stat(path)
        return {
            "path": params.file_path,
            "type": "directory" if stat_module.S_ISDIR(info.st_mode) else "file",
            "size": info.st_size,
            "modified": _timestamp(info.st_mtime),
            "created": _timestamp(getattr(info, "st_birthtime", info.st_ctime)),
            "accessed": _timestamp(info.st_atime),
            "permissions": stat_module.S_IMODE(info.st_mode),
            "uid": info.st_uid,
            "gid": info.st_gid,
        }

    async def _watch(self, params: WatchParams) -> dict[str, Any]:
        self._require("read")

        if params.watch_id is not None:
            return await self._poll_watch(params.watch_id)

        assert params.file_path is not None
        path = self._resolve(params.file_path)
        logger.debug(f"Watching: {path}")

        watch_id = f"watch_{uuid.uuid4().hex}"
        self._watches[watch_id] = _Watch(
            path=path,
            relative=params.file_path,
            events=list(params.events),
            snapshot=await self._snapshot(path),
        )
        return {
            "path": params.file_path,
            "watch_id": watch_id,
            "events": list(params.events),
            "watching": True,
        }

    async def _poll_watch(self, watch_id: str) -> dict[str, Any]:
        watch = self._watches.get(watch_id)
        if watch is None:
            raise AdapterException(
                f"Unknown watch id: {watch_id}", code="WATCH_NOT_FOUND"
            )

        current = await self._snapshot(watch.path)
        changes = []
        for entry in sorted(watch.snapshot.keys() | current.keys()):
            if entry not in watch.snapshot:
                event = "create"
            elif entry not in current:
                event = "delete"
            elif watch.snapshot[entry] != current[entry]:
                event = "change"
            else:
                continue
            if event in watch.events:
                changes.append({"event": event, "path": entry})
        watch.snapshot = current

        return {
            "path": watch.relative,
            "watch_id": watch_id,
            "events": watch.events,
            "changes": changes,
            "watching": True,
        }

    async def _snapshot(self, path: Path) -> Snapshot:
        """Modification time and size of a file, or of a directory's children."""
        if not await self.store.exists(path):
            return {}
        info = await self.store.stat(path)
        if not stat_module.S_ISDIR(info.st_mode):
            return {self._relative(path): (info.st_mtime_ns, info.st_size)}

        snapshot: Snapshot = {}
        for entry_name, _ in await self.store.list_dir(path):
            entry_path = path / entry_name
            try:
                self._resolve(self._relative(entry_path))
                entry_info = await self.store.stat(entry_path)
            except PathSecurityError:
                logger.debug(f"Skipping entry outside base path: {entry_path}")
                continue
            except FileNotFoundError:
                continue
            snapshot[self._relative(entry_path)] = (
                entry_info.st_mtime_ns,
                entry_info.st_size,
            )
        return snapshot
