"""
Database module - Relational storage collaborator.

This module handles:
- Database connection management
- ORM models (messages, facts, symptoms, settings)
- The repository used by the chat engine
- Table creation
"""
from nestchat.database.connection import DatabaseConnection, get_database, reset_database
from nestchat.database.init_db import drop_tables, init_tables
from nestchat.database.models import Base, ChatMessage, StoredFact, Symptom, SystemSetting
from nestchat.database.repository import ChatRepository, get_chat_repository, reset_chat_repository

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_database",
    "reset_database",
    # Models
    "Base",
    "ChatMessage",
    "StoredFact",
    "Symptom",
    "SystemSetting",
    # Repository
    "ChatRepository",
    "get_chat_repository",
    "reset_chat_repository",
    # Init
    "init_tables",
    "drop_tables",
]
