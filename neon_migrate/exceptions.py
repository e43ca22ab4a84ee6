"""
Error taxonomy for the migration tool.
Every failure is terminal: the CLI reports it and exits with status 1.
"""
from typing import Optional


class MigrationError(Exception):
    """Base class for all migration failures."""

    prefix = "Migration failed"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ArgumentMissing(MigrationError):
    """The destination connection string was not supplied."""

    prefix = "Error"


class SourceConnectError(MigrationError):
    """The SQLite source could not be opened."""

    prefix = "Error: Could not open SQLite database"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class SourceReadError(SourceConnectError):
    """The source table could not be read or holds an unusable value."""

    prefix = "Error reading SQLite database"


class DestinationConnectError(MigrationError):
    """The destination database could not be reached."""

    prefix = "Error: Could not connect to destination database"


class QueryError(MigrationError):
    """A truncate or insert statement failed on the destination."""

    prefix = "Error during migration"

    def __init__(
        self,
        message: str,
        rows_processed: int = 0,
        rows_total: Optional[int] = None,
        rolled_back: bool = False
    ):
        super().__init__(message)
        self.rows_processed = rows_processed
        self.rows_total = rows_total
        self.rolled_back = rolled_back
