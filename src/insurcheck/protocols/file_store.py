"""FileStore protocol for document storage backends."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class FileMetadata:
    """Metadata returned from file operations."""

    key: str
    size: int
    content_type: str | None
    etag: str
    last_modified: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "size": self.size,
            "contentType": self.content_type,
            "etag": self.etag,
            "lastModified": self.last_modified.isoformat(),
        }


class FileStore(Protocol):
    """Protocol for document storage backends (object storage, filesystem)."""

    async def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> FileMetadata:
        """Store a file and return its metadata."""
        ...

    async def get(self, key: str) -> tuple[bytes, FileMetadata] | None:
        """Retrieve a file and its metadata. Returns None if not found."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        ...

    def list(self, prefix: str) -> AsyncIterator[FileMetadata]:
        """List files under a prefix."""
        ...
