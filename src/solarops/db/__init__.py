"""Database module for SolarOps."""

from solarops.db.base import Base, TimestampMixin
from solarops.db.engine import create_engine, create_tables, get_session

__all__ = ["Base", "TimestampMixin", "create_engine", "create_tables", "get_session"]
