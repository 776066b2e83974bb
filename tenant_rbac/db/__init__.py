from .session import DatabaseManager, atomic, get_db, get_db_manager

__all__ = ["DatabaseManager", "atomic", "get_db", "get_db_manager"]
