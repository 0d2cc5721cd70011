"""Database module for the short-link service."""
from app.db.base import engine, get_engine, get_session, async_session_factory, DatabaseHealthCheck
from app.db.session import get_db, db_transaction, SessionManager
from app.db.resilience import initialize_database_connection, check_database_connection

__all__ = [
    "engine",
    "get_engine",
    "get_session",
    "async_session_factory",
    "DatabaseHealthCheck",
    "get_db",
    "db_transaction",
    "SessionManager",
    "initialize_database_connection",
    "check_database_connection",
]
