"""SQL database backends."""

from insurcheck.backends.database.sqlite import SQLiteDatabase

__all__ = ["SQLiteDatabase"]
