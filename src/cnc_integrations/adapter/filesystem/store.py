"""Local file store used by the file system adapter.

Every disk access of the adapter goes through this object, which keeps the
I/O surface narrow and lets tests substitute or spy on it. Blocking calls run
in worker threads.
"""

import asyncio
import os
import shutil
from pathlib import Path


class LocalFileStore:
    """Async facade over ``os``/``shutil`` for absolute, pre-validated paths."""

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def is_dir(self, path: Path) -> bool:
        return await asyncio.to_thread(os.path.isdir, path)

    async def stat(self, path: Path) -> os.stat_result:
        return await asyncio.to_thread(os.stat, path)

    async def read(self, path: Path, offset: int = 0, length: int | None = None) -> bytes:
        def _read() -> bytes:
            with open(path, "rb") as f:
                if offset:
                    f.seek(offset)
                return f.read(-1 if length is None else length)

        return await asyncio.to_thread(_read)

    async def write(self, path: Path, data: bytes, append: bool = False) -> None:
        def _write() -> None:
            with open(path, "ab" if append else "wb") as f:
                f.write(data)

        await asyncio.to_thread(_write)

    async def list_dir(self, path: Path) -> list[tuple[str, bool]]:
        """Return ``(name, is_directory)`` pairs sorted by name."""

        def _list() -> list[tuple[str, bool]]:
            with os.scandir(path) as entries:
                return sorted((entry.name, entry.is_dir()) for entry in entries)

        return await asyncio.to_thread(_list)

    async def remove_file(self, path: Path) -> None:
        await asyncio.to_thread(os.unlink, path)

    async def remove_dir(self, path: Path, recursive: bool = False) -> None:
        if recursive:
            await asyncio.to_thread(shutil.rmtree, path)
        else:
            await asyncio.to_thread(os.rmdir, path)

    async def copy(self, source: Path, target: Path) -> None:
        await asyncio.to_thread(shutil.copyfile, source, target)

    async def move(self, source: Path, target: Path) -> None:
        await asyncio.to_thread(os.replace, source, target)

    async def mkdir(self, path: Path, parents: bool = False) -> None:
        await asyncio.to_thread(path.mkdir, parents=parents, exist_ok=parents)
