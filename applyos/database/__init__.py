"""
Database module - SQLAlchemy access layer.

- connection.py : engine and session lifecycle
- models.py     : ORM models for applications, documents, questions, ...
- init_db.py    : table creation for fresh databases
"""
from applyos.database.connection import DatabaseConnection, get_database, reset_database
from applyos.database.models import (
    Base,
    User,
    Application,
    Question,
    Document,
    ApplicationDocument,
    Notification,
    StatusHistory,
    ApplicationNote,
    AIRetryTask,
)
from applyos.database.init_db import init_tables, drop_tables

__all__ = [
    "DatabaseConnection",
    "get_database",
    "reset_database",
    "Base",
    "User",
    "Application",
    "Question",
    "Document",
    "ApplicationDocument",
    "Notification",
    "StatusHistory",
    "ApplicationNote",
    "AIRetryTask",
    "init_tables",
    "drop_tables",
]
