"""Configuration module for the SQLite to PostgreSQL migration tool."""

from .settings import (
    settings, get_settings, get_sqlite_path, Settings, SSL_MODES, ENCRYPTED_SSL_MODES
)

__all__ = [
    "settings",
    "get_settings",
    "get_sqlite_path",
    "Settings",
    "SSL_MODES",
    "ENCRYPTED_SSL_MODES"
]
