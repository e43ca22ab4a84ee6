"""Database module for the migration tool."""

from .models import Base, Post
from .connection import (
    SourceDatabase, DestinationDatabase, build_destination_url, quote_identifier
)

__all__ = [
    "Base",
    "Post",
    "SourceDatabase",
    "DestinationDatabase",
    "build_destination_url",
    "quote_identifier"
]
