"""
SQLite to PostgreSQL table migration.

Copies one table: read every source row, clear the destination table, insert
the rows again with their original primary keys. By default each statement
commits on its own, so a failure part-way through leaves the destination
partially populated; ``atomic=True`` runs clear and insert in one transaction.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, func, insert, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from neon_migrate.database import Base, DestinationDatabase, Post, SourceDatabase
from neon_migrate.exceptions import QueryError, SourceReadError
from .records import PostRecord

logger = structlog.get_logger(__name__)


def describe_error(exc: BaseException) -> str:
    """Short message for a database error, without SQLAlchemy's statement dump."""
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).strip()


@dataclass
class MigrationResult:
    """Outcome of a single table migration."""
    table: str
    source_rows: int = 0
    inserted: int = 0
    cleared: bool = False
    destination_rows: Optional[int] = None
    atomic: bool = False
    dry_run: bool = False

    @property
    def verified(self) -> bool:
        """True when the destination holds exactly as many rows as were read."""
        return self.destination_rows is not None and self.destination_rows == self.source_rows


class TableMigrator:
    """Copies one table from the SQLite source to the destination database."""

    def __init__(
        self,
        source: SourceDatabase,
        destination: DestinationDatabase,
        model: Type[Base] = Post,
        record_type: Type[BaseModel] = PostRecord,
        source_table: Optional[str] = None,
        atomic: bool = False,
        dry_run: bool = False,
        echo: Callable[[str], None] = print,
    ):
        self.source = source
        self.destination = destination
        self.model = model
        self.record_type = record_type
        self.table = model.__table__
        self.source_table = source_table or self.table.name
        self.atomic = atomic
        self.dry_run = dry_run
        self.echo = echo
        self.label = f"{self.table.name.lower()}s"

    async def run(self) -> MigrationResult:
        """Run the migration; both connections are released on every exit path."""
        result = MigrationResult(table=self.table.name, atomic=self.atomic, dry_run=self.dry_run)
        log = logger.bind(table=self.table.name)

        with self.source.session():
            self.echo(f"✅ Connected to SQLite: {self.source.sqlite_path}")

            async with self.destination.connect() as conn:
                self.echo("✅ Connected to destination PostgreSQL\n")
                self.echo(f"📋 Migrating table: {self.table.name}")

                records = self._fetch_records()
                result.source_rows = len(records)
                self.echo(f"   Found {len(records)} {self.label} in SQLite")
                log.info("Source rows fetched", count=len(records))

                if not records:
                    self.echo(f"   ℹ️  No {self.label} to migrate")
                    return result

                if self.dry_run:
                    self.echo(f"   🔎 Dry run: {len(records)} {self.label} would be copied, destination untouched")
                    return result

                if self.atomic:
                    async with conn.begin():
                        await self._copy(conn, records, result)
                else:
                    conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                    await self._copy(conn, records, result)

                self.echo(f"   ✅ Inserted {result.inserted} {self.label} into PostgreSQL")
                result.destination_rows = await self._count_destination(conn)
                log.info(
                    "Table migrated",
                    inserted=result.inserted,
                    destination_rows=result.destination_rows,
                    atomic=self.atomic
                )

        return result

    def _fetch_records(self) -> List[BaseModel]:
        rows = self.source.fetch_all(self.source_table, self.record_type.source_columns())
        records = []
        for row in rows:
            try:
                records.append(self.record_type.model_validate(row))
            except ValidationError as e:
                raise SourceReadError(
                    f"Invalid row in {self.source_table} (id={row.get('id')!r}): {e}",
                    path=str(self.source.sqlite_path)
                ) from e
        return records

    async def _copy(self, conn: AsyncConnection, records: List[BaseModel], result: MigrationResult) -> None:
        await self._clear_destination(conn, result)
        result.cleared = True
        self.echo("   Cleared existing data in PostgreSQL")

        statement = insert(self.table)
        for record in records:
            try:
                await conn.execute(statement, record.to_insert_params())
            except SQLAlchemyError as e:
                logger.error(
                    "Insert failed",
                    table=self.table.name,
                    record_id=record.id,
                    inserted=result.inserted,
                    error=describe_error(e)
                )
                raise QueryError(
                    f"Insert of {self.table.name} id={record.id} failed: {describe_error(e)}",
                    rows_processed=result.inserted,
                    rows_total=len(records),
                    rolled_back=self.atomic
                ) from e
            result.inserted += 1

    async def _clear_destination(self, conn: AsyncConnection, result: MigrationResult) -> None:
        """Remove every row, cascading to dependent tables where the dialect supports it."""
        if conn.dialect.name == "postgresql":
            table_name = conn.dialect.identifier_preparer.format_table(self.table)
            statement = text(f"TRUNCATE TABLE {table_name} CASCADE")
        else:
            statement = delete(self.table)

        try:
            await conn.execute(statement)
        except SQLAlchemyError as e:
            logger.error("Clearing destination failed", table=self.table.name, error=describe_error(e))
            raise QueryError(
                f"Could not clear {self.table.name}: {describe_error(e)}",
                rows_processed=0,
                rows_total=result.source_rows,
                rolled_back=self.atomic
            ) from e

    async def _count_destination(self, conn: AsyncConnection) -> Optional[int]:
        try:
            return await conn.scalar(select(func.count()).select_from(self.table))
        except SQLAlchemyError as e:
            logger.warning("Could not count destination rows", table=self.table.name, error=describe_error(e))
            return None
