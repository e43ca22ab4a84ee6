"""
Fixtures for the migration tests.

The source is a real SQLite file shaped like Prisma's dev.db. The destination is
another SQLite file reached through sqlite+aiosqlite, so the whole
read/clear/insert path runs without a PostgreSQL server.
"""
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from neon_migrate.config import Settings


SOURCE_DDL = """
CREATE TABLE "Post" (
    "id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    "username" TEXT NOT NULL,
    "content" TEXT NOT NULL,
    "image" TEXT,
    "createdAt" DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""

DESTINATION_DDL = """
CREATE TABLE "Post" (
    "id" INTEGER NOT NULL PRIMARY KEY,
    "username" TEXT NOT NULL,
    "content" TEXT NOT NULL,
    "image" TEXT,
    "createdAt" DATETIME NOT NULL
    {extra}
)
"""

EXAMPLE_ROWS = [
    (1, "alice", "hello", None, 1700000000000),
    (2, "bob", "world", "img.png", 1700000100000),
]

Row = Tuple


def read_posts(path: Path) -> List[Row]:
    """All destination rows, ordered by id."""
    with closing(sqlite3.connect(path)) as conn:
        return conn.execute(
            'SELECT id, username, content, image, "createdAt" FROM "Post" ORDER BY id'
        ).fetchall()


@pytest.fixture
def make_source(tmp_path) -> Callable[..., Path]:
    """Create a Prisma-style SQLite source file holding the given rows."""
    def _make(rows: Sequence[Row] = EXAMPLE_ROWS, name: str = "dev.db") -> Path:
        path = tmp_path / "prisma" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with closing(sqlite3.connect(path)) as conn:
            conn.execute(SOURCE_DDL)
            conn.executemany(
                'INSERT INTO "Post" (id, username, content, image, "createdAt") VALUES (?, ?, ?, ?, ?)',
                rows
            )
            conn.commit()
        return path

    return _make


@pytest.fixture
def make_destination(tmp_path) -> Callable[..., Path]:
    """Create a destination database with the Post schema already migrated."""
    def _make(
        rows: Sequence[Row] = (),
        extra: str = "",
        with_schema: bool = True,
        name: str = "destination.db",
    ) -> Path:
        path = tmp_path / name
        with closing(sqlite3.connect(path)) as conn:
            if with_schema:
                conn.execute(DESTINATION_DDL.format(extra=extra))
                conn.executemany(
                    'INSERT INTO "Post" (id, username, content, image, "createdAt") VALUES (?, ?, ?, ?, ?)',
                    rows
                )
            conn.commit()
        return path

    return _make


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def settings_for(tmp_path) -> Callable[[Optional[Path]], Settings]:
    def _settings(sqlite_path: Optional[Path] = None) -> Settings:
        return Settings(sqlite_path=sqlite_path or tmp_path / "prisma" / "dev.db")

    return _settings
