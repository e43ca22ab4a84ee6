"""
Connection management for both ends of the migration.

The source is a read-only sqlite3 connection to the local Prisma database file.
The destination is an async SQLAlchemy engine (asyncpg driver) whose pool hands
out exactly one connection for the whole run.
"""
import asyncio
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Sequence, Tuple, Union

import structlog
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from neon_migrate.config import ENCRYPTED_SSL_MODES, get_settings, get_sqlite_path
from neon_migrate.exceptions import DestinationConnectError, SourceConnectError, SourceReadError

logger = structlog.get_logger(__name__)

POSTGRES_SCHEMES = ("postgres", "postgresql")

# libpq options that asyncpg does not accept as connect keywords
LIBPQ_ONLY_PARAMS = ("sslmode", "ssl", "channel_binding")


def quote_identifier(name: str) -> str:
    """Quote an SQL identifier the way both SQLite and PostgreSQL expect."""
    return '"' + name.replace('"', '""') + '"'


class SourceDatabase:
    """Read-only access to the SQLite database file."""

    def __init__(self, sqlite_path: Optional[Union[str, Path]] = None):
        self.sqlite_path = Path(sqlite_path) if sqlite_path is not None else get_sqlite_path()
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> sqlite3.Connection:
        """Open the database file read-only and make sure it is a usable SQLite file."""
        if self._conn is not None:
            return self._conn

        if not self.sqlite_path.exists():
            raise SourceConnectError(
                f"SQLite database not found: {self.sqlite_path}", path=str(self.sqlite_path)
            )

        conn = None
        try:
            uri = f"{self.sqlite_path.resolve().as_uri()}?mode=ro"
            conn = sqlite3.connect(uri, uri=True)
            conn.row_factory = sqlite3.Row
            # sqlite3.connect is lazy; a corrupt or foreign file only fails on first read
            conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise SourceConnectError(str(e), path=str(self.sqlite_path)) from e

        self._conn = conn
        logger.info("Connected to SQLite", path=str(self.sqlite_path))
        return conn

    def fetch_all(
        self, table: str, columns: Sequence[str], order_by: str = "id"
    ) -> List[Dict[str, Any]]:
        """Read every row of a table, ordered by its key, into memory."""
        if self._conn is None:
            raise SourceReadError("SQLite database is not open", path=str(self.sqlite_path))

        column_list = ", ".join(quote_identifier(column) for column in columns)
        query = (
            f"SELECT {column_list} FROM {quote_identifier(table)} "
            f"ORDER BY {quote_identifier(order_by)}"
        )
        try:
            rows = self._conn.execute(query).fetchall()
        except sqlite3.Error as e:
            raise SourceReadError(str(e), path=str(self.sqlite_path)) from e

        logger.debug("Fetched rows from SQLite", table=table, count=len(rows))
        return [dict(row) for row in rows]

    def close(self) -> None:
        """Close the connection; calling it again is a no-op."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed", path=str(self.sqlite_path))

    @contextmanager
    def session(self) -> Generator["SourceDatabase", None, None]:
        """Open the source for the duration of a block."""
        self.open()
        try:
            yield self
        finally:
            self.close()


def resolve_ssl_mode(requested: Optional[str], default_mode: str) -> str:
    """Pick the TLS mode for asyncpg, refusing to run unencrypted."""
    if not requested:
        return default_mode

    mode = requested.strip().lower()
    if mode in ENCRYPTED_SSL_MODES:
        return mode

    logger.warning(
        "Destination URL requests a weak sslmode, enforcing encryption",
        requested=mode, enforced=default_mode
    )
    return default_mode


def build_destination_url(
    database_url: str,
    ssl_mode: str = "require",
    connect_timeout: Optional[float] = None,
) -> Tuple[URL, Dict[str, Any]]:
    """Turn an operator-supplied connection string into an asyncpg URL and connect args.

    PostgreSQL URLs (``postgres://``, ``postgresql://`` or any ``postgresql+driver://``)
    are rewritten to the asyncpg driver. libpq-only query parameters are stripped
    because asyncpg rejects them; ``sslmode`` is translated into asyncpg's ``ssl``
    argument instead. Any other URL is returned untouched with no connect args.
    """
    url = make_url(database_url)
    scheme = url.drivername.split("+", 1)[0]
    if scheme not in POSTGRES_SCHEMES:
        return url, {}

    query = dict(url.query)
    requested = query.get("sslmode") or query.get("ssl")
    if isinstance(requested, tuple):
        requested = requested[-1]
    for param in LIBPQ_ONLY_PARAMS:
        query.pop(param, None)

    connect_args: Dict[str, Any] = {"ssl": resolve_ssl_mode(requested, ssl_mode)}
    if connect_timeout is not None:
        connect_args["timeout"] = connect_timeout

    return url.set(drivername="postgresql+asyncpg", query=query), connect_args


class DestinationDatabase:
    """Owns the destination engine (connection pool) for a single migration run."""

    def __init__(
        self,
        database_url: str,
        ssl_mode: Optional[str] = None,
        connect_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.database_url = database_url
        self.ssl_mode = ssl_mode or settings.ssl_mode
        self.connect_timeout = connect_timeout if connect_timeout is not None else settings.connect_timeout
        self._engine: Optional[AsyncEngine] = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the async engine."""
        if self._engine is None:
            url, connect_args = build_destination_url(
                self.database_url, self.ssl_mode, self.connect_timeout
            )
            engine_options: Dict[str, Any] = {"echo": False, "pool_pre_ping": True}
            if url.get_backend_name() == "postgresql":
                # One connection is all a sequential run ever needs
                engine_options.update(pool_size=1, max_overflow=0, connect_args=connect_args)
            self._engine = create_async_engine(url, **engine_options)
        return self._engine

    @property
    def display_url(self) -> str:
        """Connection URL with the password masked, safe for logs."""
        try:
            return make_url(self.database_url).render_as_string(hide_password=True)
        except (SQLAlchemyError, ValueError):
            return "<invalid url>"

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator[AsyncConnection, None]:
        """Check out one connection, then release it and shut the pool down."""
        try:
            conn = await self.engine.connect()
        except (SQLAlchemyError, OSError, ValueError, asyncio.TimeoutError) as e:
            logger.error("Destination connection failed", url=self.display_url, error=str(e))
            await self.dispose()
            raise DestinationConnectError(str(e) or e.__class__.__name__) from e

        logger.info("Connected to destination", url=self.display_url)
        try:
            yield conn
        finally:
            await conn.close()
            await self.dispose()

    async def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Destination pool disposed")
