"""Migration utilities for copying SQLite tables into PostgreSQL."""

from .records import PostRecord, parse_timestamp, to_naive_utc
from .table_migrator import TableMigrator, MigrationResult

__all__ = [
    "PostRecord",
    "parse_timestamp",
    "to_naive_utc",
    "TableMigrator",
    "MigrationResult"
]
