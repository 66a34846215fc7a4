"""Document file storage backends."""

from insurcheck.backends.files.local import LocalFileStore

__all__ = ["LocalFileStore"]
