"""
SQLAlchemy 2.0 models for the destination schema.
The schema itself is owned by Prisma migrations; these mappings only describe it.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class Post(Base):
    """A user post, as created by the Prisma `Post` model."""
    __tablename__ = "Post"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Prisma keeps camelCase column names, stored as timestamp(3) without time zone
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=False), nullable=False)
