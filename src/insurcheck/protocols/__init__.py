"""Protocol interfaces for pluggable backends."""

from insurcheck.protocols.database import Database, Row
from insurcheck.protocols.file_store import FileMetadata, FileStore
from insurcheck.protocols.tenant_store import TenantStore

__all__ = [
    "Database",
    "FileMetadata",
    "FileStore",
    "Row",
    "TenantStore",
]
