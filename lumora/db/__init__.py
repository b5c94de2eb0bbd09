"""Database engine, session factory and declarative base."""

from lumora.db.session import Base, SessionLocal, check_db_connection, engine, get_db

__all__ = ["Base", "SessionLocal", "check_db_connection", "engine", "get_db"]
