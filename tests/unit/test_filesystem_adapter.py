"""Unit tests for the file system adapter."""

import errno
import os
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
from cnc_integrations.adapter.errors import PathSecurityError
from cnc_integrations.adapter.filesystem import (
    FileSystemAdapter,
    FileSystemConfig,
    LocalFileStore,
    resolve_within,
)
from cnc_integrations.models.api import AdapterOperation
from pydantic import ValidationError

ALL_PERMISSIONS = {"read": True, "write": True, "delete": True, "create": True}


def op(type_: str, **parameters: Any) -> AdapterOperation:
    return AdapterOperation(type=type_, parameters=parameters)


async def connect_adapter(base: Path, **config: Any) -> FileSystemAdapter:
    adapter = FileSystemAdapter(store=Mock(wraps=LocalFileStore()))
    await adapter.initialize({"base_path": base, **config})
    result = await adapter.connect()
    assert result.success, result.error
    return adapter


@pytest.fixture
def base(tmp_path: Path) -> Path:
    base = tmp_path / "base"
    base.mkdir()
    (base / "program.gcode").write_text("G0 X0 Y0\nG1 X10 Y10\n")
    return base


class TestFileSystemConfig:
    """Test cases for file system configuration."""

    def test_defaults(self, tmp_path: Path) -> None:
        """Test that only read is granted by default."""
        config = FileSystemConfig(base_path=tmp_path)
        assert config.permissions.read
        assert not config.permissions.write
        assert not config.permissions.delete
        assert not config.permissions.create
        assert config.allowed_extensions is None

    def test_extensions_normalized(self, tmp_path: Path) -> None:
        """Test extension normalization."""
        config = FileSystemConfig(base_path=tmp_path, allowed_extensions=["GCODE", ".nc"])
        assert config.allowed_extensions == (".gcode", ".nc")

    def test_size_must_be_positive(self, tmp_path: Path) -> None:
        """Test max_file_size validation."""
        with pytest.raises(ValidationError):
            FileSystemConfig(base_path=tmp_path, max_file_size=0)


class TestResolveWithin:
    """Test cases for the base path jail."""

    @pytest.fixture
    def root(self, tmp_path: Path) -> Path:
        return Path(os.path.realpath(tmp_path))

    def test_relative_path(self, root: Path) -> None:
        """Test that a plain relative path resolves under the base."""
        assert resolve_within(root, "jobs/part.gcode") == root / "jobs" / "part.gcode"

    def test_empty_path_is_base(self, root: Path) -> None:
        """Test that an empty path resolves to the base itself."""
        assert resolve_within(root, "") == root

    @pytest.mark.parametrize(
        "user_path, message",
        [
            ("../etc/passwd", "Path traversal not allowed"),
            ("jobs/../../secret", "Path traversal not allowed"),
            ("jobs\\..\\..\\secret", "Path traversal not allowed"),
            ("/etc/passwd", "Absolute paths not allowed"),
            ("C:\\Windows\\system32", "Absolute paths not allowed"),
            ("\\\\server\\share\\file", "Absolute paths not allowed"),
            ("file\x00.txt", "Null bytes not allowed in paths"),
        ],
    )
    def test_rejected_paths(self, root: Path, user_path: str, message: str) -> None:
        """Test that unsafe paths are rejected."""
        with pytest.raises(PathSecurityError, match=message):
            resolve_within(root, user_path)

    def test_symlink_escape(self, tmp_path: Path) -> None:
        """Test that a symlink leading outside the base is rejected."""
        root = Path(os.path.realpath(tmp_path)) / "root"
        root.mkdir()
        outside = tmp_path / "outside"
        outside.mkdir()
        (root / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(PathSecurityError, match="outside of allowed base path"):
            resolve_within(root, "link/secret.txt")


class TestFileSystemConnect:
    """Test cases for connecting the file system adapter."""

    @pytest.mark.asyncio
    async def test_connect(self, base: Path) -> None:
        """Test connect metadata."""
        adapter = FileSystemAdapter()
        await adapter.initialize({"base_path": base})
        result = await adapter.connect()
        assert result.success
        assert result.connection_id.startswith("fs_")
        assert result.metadata["base_path"] == os.path.realpath(base)

    @pytest.mark.asyncio
    async def test_missing_base_path(self, tmp_path: Path) -> None:
        """Test that a missing base path fails to connect."""
        adapter = FileSystemAdapter()
        await adapter.initialize({"base_path": tmp_path / "missing"})
        result = await adapter.connect()
        assert not result.success
        assert "Base path not accessible" in result.error

    @pytest.mark.asyncio
    async def test_base_path_is_file(self, base: Path) -> None:
        """Test that a file as base path fails to connect."""
        adapter = FileSystemAdapter()
        await adapter.initialize({"base_path": base / "program.gcode"})
        result = await adapter.connect()
        assert not result.success
        assert "not a directory" in result.error

    @pytest.mark.asyncio
    async def test_health_and_status(self, base: Path) -> None:
        """Test health check and status metadata."""
        adapter = await connect_adapter(base, allowed_extensions=[".gcode"])
        assert await adapter.is_healthy()

        await adapter.execute(op("stat", file_path="program.gcode"))
        status = await adapter.get_status()
        assert status.connection_count == 2
        assert status.metadata["allowed_extensions"] == [".gcode"]
        assert status.metadata["active_watches"] == 0


class TestFileSystemRead:
    """Test cases for reading files."""

    @pytest.mark.asyncio
    async def test_read_text(self, base: Path) -> None:
        """Test reading a text file."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("read", file_path="program.gcode"))
        assert result.success
        assert result.data["content"].startswith("G0 X0 Y0")
        assert result.data["size"] == len("G0 X0 Y0\nG1 X10 Y10\n")
        assert result.data["encoding"] == "utf-8"

    @pytest.mark.asyncio
    async def test_read_bytes_range(self, base: Path) -> None:
        """Test reading raw bytes with offset and length."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(
            op("read", file_path="program.gcode", encoding=None, offset=3, length=5)
        )
        assert result.success
        assert result.data["content"] == b"X0 Y0"

    @pytest.mark.asyncio
    async def test_read_camel_case_parameters(self, base: Path) -> None:
        """Test that camelCase parameter names are accepted."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(
            {"type": "read", "parameters": {"filePath": "program.gcode"}}
        )
        assert result.success

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_path", ["../outside.txt", "/etc/passwd", "a/../../b"])
    @pytest.mark.parametrize(
        "verb,parameters",
        [
            ("read", {}),
            ("write", {"content": "G0"}),
            ("delete", {"recursive": True}),
            ("stat", {}),
        ],
    )
    async def test_rejected_path_does_no_io(
        self, base: Path, verb: str, parameters: dict[str, Any], user_path: str
    ) -> None:
        """Test that rejected paths never reach the store."""
        adapter = await connect_adapter(base, permissions=ALL_PERMISSIONS)
        adapter.store.reset_mock()

        result = await adapter.execute(op(verb, file_path=user_path, **parameters))
        assert not result.success
        assert result.error.code == "INVALID_PATH"
        assert adapter.store.method_calls == []

    @pytest.mark.asyncio
    async def test_execute_before_connect(self, base: Path) -> None:
        """Test that a never-connected adapter touches nothing."""
        adapter = FileSystemAdapter(store=Mock(wraps=LocalFileStore()))
        await adapter.initialize({"base_path": base})

        result = await adapter.execute(op("read", file_path="program.gcode"))
        assert not result.success
        assert result.error.code == "NOT_CONNECTED"
        assert result.error.retryable is False
        assert adapter.store.method_calls == []

    @pytest.mark.asyncio
    async def test_symlink_escape(self, tmp_path: Path, base: Path) -> None:
        """Test reading through a symlink that leaves the base path."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("secret")
        (base / "link").symlink_to(outside, target_is_directory=True)

        adapter = await connect_adapter(base)
        adapter.store.reset_mock()
        result = await adapter.execute(op("read", file_path="link/secret.txt"))
        assert result.error.code == "INVALID_PATH"
        assert adapter.store.method_calls == []

    @pytest.mark.asyncio
    async def test_missing_file(self, base: Path) -> None:
        """Test the errno classification of a missing file."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("read", file_path="missing.gcode"))
        assert not result.success
        assert result.error.code == "FILE_NOT_FOUND"
        assert result.error.retryable is False
        assert result.error.details["errno_name"] == "ENOENT"
        assert result.error.details["path"] == "missing.gcode"

    @pytest.mark.asyncio
    async def test_read_directory(self, base: Path) -> None:
        """Test that reading a directory fails."""
        (base / "jobs").mkdir()
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("read", file_path="jobs"))
        assert result.error.code == "NOT_A_FILE"

    @pytest.mark.asyncio
    async def test_extension_not_allowed(self, base: Path) -> None:
        """Test the extension allow-list."""
        (base / "notes.txt").write_text("hello")
        adapter = await connect_adapter(base, allowed_extensions=[".gcode", ".nc"])

        result = await adapter.execute(op("read", file_path="notes.txt"))
        assert result.error.code == "EXTENSION_NOT_ALLOWED"

        result = await adapter.execute(op("read", file_path="program.gcode"))
        assert result.success

    @pytest.mark.asyncio
    async def test_file_too_large(self, base: Path) -> None:
        """Test the size ceiling on read."""
        adapter = await connect_adapter(base, max_file_size=5)
        result = await adapter.execute(op("read", file_path="program.gcode"))
        assert result.error.code == "FILE_TOO_LARGE"
        assert result.error.details["max_file_size"] == 5

    @pytest.mark.asyncio
    async def test_read_permission(self, base: Path) -> None:
        """Test that reading requires the read permission."""
        adapter = await connect_adapter(base, permissions={"read": False})
        result = await adapter.execute(op("read", file_path="program.gcode"))
        assert result.error.code == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_decode_error(self, base: Path) -> None:
        """Test the classification of undecodable content."""
        (base / "binary.gcode").write_bytes(b"\xff\xfe\xfa")
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("read", file_path="binary.gcode"))
        assert result.error.code == "ENCODING_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_encoding(self, base: Path) -> None:
        """Test that unknown encodings are invalid parameters."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(
            op("read", file_path="program.gcode", encoding="no-such-codec")
        )
        assert result.error.code == "INVALID_OPERATION"


class TestFileSystemWrite:
    """Test cases for writing files."""

    @pytest.mark.asyncio
    async def test_write_denied_by_default(self, base: Path) -> None:
        """Test that the default read-only permissions refuse writes."""
        adapter = await connect_adapter(base)
        adapter.store.reset_mock()
        result = await adapter.execute(op("write", file_path="new.gcode", content="G0"))
        assert result.error.code == "PERMISSION_DENIED"
        assert adapter.store.method_calls == []
        assert not (base / "new.gcode").exists()

    @pytest.mark.asyncio
    async def test_create_only(self, base: Path) -> None:
        """Test that create allows new files but not overwrites."""
        adapter = await connect_adapter(base, permissions={"create": True})

        result = await adapter.execute(op("write", file_path="new.gcode", content="G0"))
        assert result.success
        assert result.data["created"] is True
        assert (base / "new.gcode").read_text() == "G0"

        result = await adapter.execute(op("write", file_path="new.gcode", content="G1"))
        assert result.error.code == "PERMISSION_DENIED"
        assert "overwrite" in result.error.message

    @pytest.mark.asyncio
    async def test_write_only(self, base: Path) -> None:
        """Test that write allows overwrites but not new files."""
        adapter = await connect_adapter(base, permissions={"write": True})

        result = await adapter.execute(
            op("write", file_path="program.gcode", content="M30\n")
        )
        assert result.success
        assert result.data["created"] is False
        assert result.data["size"] == 4

        result = await adapter.execute(op("write", file_path="new.gcode", content="G0"))
        assert result.error.code == "PERMISSION_DENIED"

    @pytest.mark.asyncio
    async def test_append_and_bytes(self, base: Path) -> None:
        """Test appending bytes content."""
        adapter = await connect_adapter(base, permissions=ALL_PERMISSIONS)
        result = await adapter.execute(
            op("write", file_path="program.gcode", content=b"M30\n", append=True)
        )
        assert result.success
        assert (base / "program.gcode").read_text().endswith("G1 X10 Y10\nM30\n")

    @pytest.mark.asyncio
    async def test_append_size_limit(self, base: Path) -> None:
        """Test that appending counts the existing size against the ceiling."""
        adapter = await connect_adapter(
            base, permissions=ALL_PERMISSIONS, max_file_size=25
        )
        result = await adapter.execute(
            op("write", file_path="program.gcode", content="M30 M30\n", append=True)
        )
        assert result.error.code == "FILE_TOO_LARGE"

    @pytest.mark.asyncio
    async def test_write_missing_parent(self, base: Path) -> None:
        """Test that writing into a missing directory is classified."""
        adapter = await connect_adapter(base, permissions=ALL_PERMISSIONS)
        result = await adapter.execute(
            op("write", file_path="missing/new.gcode", content="G0")
        )
        assert result.error.code == "FILE_NOT_FOUND"


class TestFileSystemDirectories:
    """Test cases for list, mkdir, stat and delete."""

    @pytest.mark.asyncio
    async def test_list_recursive(self, base: Path) -> None:
        """Test recursive listing."""
        (base / "jobs").mkdir()
        (base / "jobs" / "part.nc").write_text("G0")
        adapter = await connect_adapter(base)

        result = await adapter.execute(op("list", recursive=True, include_stats=True))
        assert result.success
        paths = [(e["path"], e["type"]) for e in result.data["entries"]]
        assert paths == [
            ("jobs", "directory"),
            ("jobs/part.nc", "file"),
            ("program.gcode", "file"),
        ]
        assert result.data["count"] == 3
        assert "size" in result.data["entries"][0]

    @pytest.mark.asyncio
    async def test_list_flat(self, base: Path) -> None:
        """Test non-recursive listing of a subdirectory."""
        (base / "jobs" / "inner").mkdir(parents=True)
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("list", dir_path="jobs"))
        assert [e["path"] for e in result.data["entries"]] == ["jobs/inner"]

    @pytest.mark.asyncio
    async def test_list_skips_escaping_symlinks(self, tmp_path: Path, base: Path) -> None:
        """Test that symlinks leaving the base path are neither listed nor stat'ed."""
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("a much larger secret file")
        (base / "leak.gcode").symlink_to(outside / "secret.txt")
        (base / "leakdir").symlink_to(outside, target_is_directory=True)
        adapter = await connect_adapter(base)
        adapter.store.reset_mock()

        result = await adapter.execute(op("list", recursive=True, include_stats=True))
        assert result.success
        assert [e["path"] for e in result.data["entries"]] == ["program.gcode"]
        stat_paths = [c.args[0] for c in adapter.store.stat.call_args_list]
        assert all(p.is_relative_to(adapter.base_path) for p in stat_paths)
        assert not any(p.name in ("leak.gcode", "leakdir") for p in stat_paths)

    @pytest.mark.asyncio
    async def test_mkdir(self, base: Path) -> None:
        """Test directory creation."""
        adapter = await connect_adapter(base, permissions={"create": True})

        result = await adapter.execute(op("mkdir", dir_path="a/b", recursive=True))
        assert result.success
        assert (base / "a" / "b").is_dir()

        result = await adapter.execute(op("mkdir", dir_path="a"))
        assert result.error.code == "FILE_EXISTS"

    @pytest.mark.asyncio
    async def test_stat(self, base: Path) -> None:
        """Test file metadata."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("stat", file_path="program.gcode"))
        assert result.data["type"] == "file"
        assert result.data["size"] == (base / "program.gcode").stat().st_size
        assert isinstance(result.data["permissions"], int)

    @pytest.mark.asyncio
    async def test_delete(self, base: Path) -> None:
        """Test deleting files and directories."""
        (base / "jobs").mkdir()
        (base / "jobs" / "part.nc").write_text("G0")
        adapter = await connect_adapter(base, permissions={"delete": True})

        result = await adapter.execute(op("delete", file_path="jobs"))
        assert result.error.code == "DIRECTORY_NOT_EMPTY"

        result = await adapter.execute(op("delete", file_path="jobs", recursive=True))
        assert result.success
        assert result.data["type"] == "directory"
        assert not (base / "jobs").exists()

        result = await adapter.execute(op("delete", file_path="program.gcode"))
        assert result.data["type"] == "file"

    @pytest.mark.asyncio
    async def test_delete_requires_permission(self, base: Path) -> None:
        """Test that delete needs the delete permission."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("delete", file_path="program.gcode"))
        assert result.error.code == "PERMISSION_DENIED"
        assert (base / "program.gcode").exists()

    @pytest.mark.asyncio
    async def test_delete_base_path_refused(self, base: Path) -> None:
        """Test that the base path itself cannot be deleted."""
        adapter = await connect_adapter(base, permissions=ALL_PERMISSIONS)
        result = await adapter.execute(op("delete", file_path=".", recursive=True))
        assert result.error.code == "INVALID_PATH"
        assert base.exists()


class TestFileSystemTransfer:
    """Test cases for copy and move."""

    @pytest.mark.asyncio
    async def test_copy(self, base: Path) -> None:
        """Test copying a file."""
        adapter = await connect_adapter(base, permissions={"create": True})
        result = await adapter.execute(
            op("copy", source_path="program.gcode", target_path="backup.gcode")
        )
        assert result.success
        assert (base / "backup.gcode").read_text() == (base / "program.gcode").read_text()

    @pytest.mark.asyncio
    async def test_copy_existing_target(self, base: Path) -> None:
        """Test the overwrite flag on copy."""
        (base / "backup.gcode").write_text("old")
        adapter = await connect_adapter(base, permissions={"create": True})

        result = await adapter.execute(
            op("copy", source_path="program.gcode", target_path="backup.gcode")
        )
        assert result.error.code == "FILE_EXISTS"
        assert (base / "backup.gcode").read_text() == "old"

        result = await adapter.execute(
            op(
                "copy",
                source_path="program.gcode",
                target_path="backup.gcode",
                overwrite=True,
            )
        )
        assert result.success

    @pytest.mark.asyncio
    async def test_copy_extension_checked(self, base: Path) -> None:
        """Test that copy checks both extensions."""
        adapter = await connect_adapter(
            base, permissions={"create": True}, allowed_extensions=[".gcode"]
        )
        result = await adapter.execute(
            op("copy", source_path="program.gcode", target_path="program.txt")
        )
        assert result.error.code == "EXTENSION_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_move(self, base: Path) -> None:
        """Test moving a file."""
        adapter = await connect_adapter(base, permissions=ALL_PERMISSIONS)
        result = await adapter.execute(
            op("move", source_path="program.gcode", target_path="done.gcode")
        )
        assert result.success
        assert not (base / "program.gcode").exists()
        assert (base / "done.gcode").exists()

    @pytest.mark.asyncio
    async def test_move_requires_write_and_delete(self, base: Path) -> None:
        """Test move permissions."""
        adapter = await connect_adapter(base, permissions={"write": True})
        result = await adapter.execute(
            op("move", source_path="program.gcode", target_path="done.gcode")
        )
        assert result.error.code == "PERMISSION_DENIED"
        assert result.error.message == "Write and Delete permissions required"

    @pytest.mark.asyncio
    async def test_move_outside_rejected(self, base: Path) -> None:
        """Test that the target of a move is jailed too."""
        adapter = await connect_adapter(base, permissions=ALL_PERMISSIONS)
        result = await adapter.execute(
            op("move", source_path="program.gcode", target_path="../stolen.gcode")
        )
        assert result.error.code == "INVALID_PATH"
        assert (base / "program.gcode").exists()

    @pytest.mark.asyncio
    async def test_move_extension_checked(self, base: Path) -> None:
        """Test that a move cannot rename a file out of the allowed extensions."""
        adapter = await connect_adapter(
            base, permissions=ALL_PERMISSIONS, allowed_extensions=["gcode"]
        )
        result = await adapter.execute(
            op("move", source_path="program.gcode", target_path="program.exe")
        )
        assert result.error.code == "EXTENSION_NOT_ALLOWED"
        assert (base / "program.gcode").exists()
        assert not (base / "program.exe").exists()

    @pytest.mark.asyncio
    async def test_move_directory_with_extension_filter(self, base: Path) -> None:
        """Test that directories move regardless of the extension filter."""
        (base / "jobs").mkdir()
        adapter = await connect_adapter(
            base, permissions=ALL_PERMISSIONS, allowed_extensions=["gcode"]
        )
        result = await adapter.execute(
            op("move", source_path="jobs", target_path="archive")
        )
        assert result.success
        assert (base / "archive").is_dir()


class TestFileSystemWatch:
    """Test cases for polled watches."""

    @pytest.mark.asyncio
    async def test_watch_directory(self, base: Path) -> None:
        """Test create, change and delete events on a watched directory."""
        jobs = base / "jobs"
        jobs.mkdir()
        (jobs / "a.nc").write_text("G0")
        adapter = await connect_adapter(base)

        result = await adapter.execute(
            op("watch", file_path="jobs", events=["create", "change", "delete"])
        )
        assert result.success
        watch_id = result.data["watch_id"]
        assert watch_id.startswith("watch_")

        (jobs / "a.nc").write_text("G0 X100 Y100")
        (jobs / "b.nc").write_text("G1")
        result = await adapter.execute(op("watch", watch_id=watch_id))
        assert result.data["changes"] == [
            {"event": "change", "path": "jobs/a.nc"},
            {"event": "create", "path": "jobs/b.nc"},
        ]

        (jobs / "a.nc").unlink()
        result = await adapter.execute(op("watch", watch_id=watch_id))
        assert result.data["changes"] == [{"event": "delete", "path": "jobs/a.nc"}]

        result = await adapter.execute(op("watch", watch_id=watch_id))
        assert result.data["changes"] == []

    @pytest.mark.asyncio
    async def test_watch_skips_escaping_symlinks(self, tmp_path: Path, base: Path) -> None:
        """Test that a watched directory never stats entries outside the base."""
        outside = tmp_path / "outside.gcode"
        outside.write_text("G0")
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("watch", file_path=".", events=["create"]))
        watch_id = result.data["watch_id"]

        (base / "leak.gcode").symlink_to(outside)
        adapter.store.reset_mock()
        result = await adapter.execute(op("watch", watch_id=watch_id))
        assert result.data["changes"] == []
        stat_paths = [c.args[0] for c in adapter.store.stat.call_args_list]
        assert adapter.base_path / "leak.gcode" not in stat_paths

    @pytest.mark.asyncio
    async def test_watch_filters_events(self, base: Path) -> None:
        """Test that only requested events are reported."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("watch", file_path="."))
        assert result.data["events"] == ["change"]
        watch_id = result.data["watch_id"]

        (base / "new.gcode").write_text("G0")
        result = await adapter.execute(op("watch", watch_id=watch_id))
        assert result.data["changes"] == []

        status = await adapter.get_status()
        assert status.metadata["active_watches"] == 1

    @pytest.mark.asyncio
    async def test_watch_requires_target(self, base: Path) -> None:
        """Test that watch needs a path or an id."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("watch"))
        assert result.error.code == "INVALID_OPERATION"

    @pytest.mark.asyncio
    async def test_unknown_watch(self, base: Path) -> None:
        """Test polling an unknown watch."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("watch", watch_id="watch_missing"))
        assert result.error.code == "WATCH_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_disconnect_clears_watches(self, base: Path) -> None:
        """Test that watches do not survive a reconnect."""
        adapter = await connect_adapter(base)
        result = await adapter.execute(op("watch", file_path="program.gcode"))
        watch_id = result.data["watch_id"]

        await adapter.connect()
        result = await adapter.execute(op("watch", watch_id=watch_id))
        assert result.error.code == "WATCH_NOT_FOUND"


class TestFileSystemErrorClassification:
    """Test cases for errno classification."""

    @pytest.fixture
    def adapter(self) -> FileSystemAdapter:
        return FileSystemAdapter()

    @pytest.mark.parametrize(
        "error_number, code, retryable",
        [
            (errno.ENOENT, "FILE_NOT_FOUND", False),
            (errno.EACCES, "PERMISSION_DENIED", False),
            (errno.EEXIST, "FILE_EXISTS", False),
            (errno.ENOTEMPTY, "DIRECTORY_NOT_EMPTY", False),
            (errno.ENOSPC, "NO_SPACE", True),
            (errno.EMFILE, "TOO_MANY_FILES", True),
            (errno.EIO, "FILE_SYSTEM_ERROR", False),
        ],
    )
    def test_errno_codes(
        self, adapter: FileSystemAdapter, error_number: int, code: str, retryable: bool
    ) -> None:
        """Test the errno table."""
        error = adapter._classify_error(OSError(error_number, os.strerror(error_number)))
        assert error.code == code
        assert error.retryable is retryable
        assert error.details["errno"] == error_number

    def test_unknown_exception(self, adapter: FileSystemAdapter) -> None:
        """Test the fallback classification."""
        error = adapter._classify_error(RuntimeError("odd"))
        assert error.code == "FILE_SYSTEM_ERROR"
        assert error.message == "odd"
