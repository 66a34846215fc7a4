"""Local filesystem-based document storage."""

import asyncio
import atexit
import hashlib
import mimetypes
import os
from collections.abc import AsyncIterator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from insurcheck.protocols.file_store import FileMetadata

# Thread pool for file I/O, sized via environment
_max_workers = int(os.environ.get("INSURCHECK_FILE_WORKERS", "8"))
_executor = ThreadPoolExecutor(max_workers=_max_workers)

atexit.register(_executor.shutdown, wait=False)


class LocalFileStore:
    """Document storage on the local filesystem.

    Keys are relative paths such as ``"42/policy.pdf"``; the first segment
    is the tenant id, which keeps each tenant's documents in its own
    directory.
    """

    def __init__(self, path: str | Path | None = None, **kwargs: Any) -> None:
        """Initialize local file store.

        Args:
            path: Base directory for documents. Defaults to ./data/documents
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.base_path = Path(path) if path else Path("./data/documents")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Resolve a key to a path inside the base directory.

        Raises:
            ValueError: If the key escapes the base directory
        """
        decoded_key = unquote(key)

        if ".." in decoded_key or decoded_key.startswith("/"):
            raise ValueError(f"Invalid key: {key}")
        if "\x00" in decoded_key or "\\" in decoded_key:
            raise ValueError(f"Invalid key: {key}")

        target_path = (self.base_path / decoded_key).resolve()
        try:
            target_path.relative_to(self.base_path.resolve())
        except ValueError:
            raise ValueError("Invalid key: path traversal detected") from None

        return target_path

    def _get_metadata(self, path: Path, key: str) -> FileMetadata:
        """Build metadata from a stat call without reading the file."""
        stat = path.stat()
        etag = f"{stat.st_ino}-{stat.st_size}-{int(stat.st_mtime * 1000)}"
        return FileMetadata(
            key=key,
            size=stat.st_size,
            content_type=mimetypes.guess_type(path.name)[0],
            etag=hashlib.md5(etag.encode()).hexdigest(),
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    async def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> FileMetadata:
        """Store a file."""
        path = self._get_path(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(_executor, _write)

        return FileMetadata(
            key=key,
            size=len(content),
            content_type=content_type or mimetypes.guess_type(path.name)[0],
            etag=hashlib.md5(content).hexdigest(),
            last_modified=datetime.now(timezone.utc),
        )

    async def get(self, key: str) -> tuple[bytes, FileMetadata] | None:
        """Retrieve a file and its metadata."""
        path = self._get_path(key)

        def _read() -> tuple[bytes, FileMetadata] | None:
            if not path.is_file():
                return None
            return path.read_bytes(), self._get_metadata(path, key)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, _read)

    async def delete(self, key: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        path = self._get_path(key)

        def _delete() -> bool:
            if not path.is_file():
                return False
            path.unlink()
            return True

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, _delete)

    async def list(self, prefix: str) -> AsyncIterator[FileMetadata]:
        """List files under a directory prefix, sorted by key."""
        base = self._get_path(prefix) if prefix else self.base_path

        def _list_files() -> list[tuple[Path, str]]:
            if not base.is_dir():
                return []
            resolved_base = self.base_path.resolve()
            return sorted(
                (
                    (path, path.resolve().relative_to(resolved_base).as_posix())
                    for path in base.rglob("*")
                    if path.is_file()
                ),
                key=lambda item: item[1],
            )

        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(_executor, _list_files)

        for path, key in files:
            yield self._get_metadata(path, key)
