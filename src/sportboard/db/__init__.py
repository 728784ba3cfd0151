"""Database module for the local activity store."""

from .database import ActivityDatabase, get_default_db_path

__all__ = ["ActivityDatabase", "get_default_db_path"]
