"""One-shot copy of the Prisma SQLite Post table into PostgreSQL."""

__version__ = "1.0.0"
