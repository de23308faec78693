"""
Database package for the bug workflow service.
"""

from .base import Base, atomic, get_db, get_engine, init_database
from .models import BugHistoryModel, BugModel, UserModel
from .services import BugService, UserService, build_workflow_engine
from .stores import SqlAuditTrail, SqlBugStore, SqlUserDirectory

__all__ = [
    "Base",
    "BugHistoryModel",
    "BugModel",
    "BugService",
    "SqlAuditTrail",
    "SqlBugStore",
    "SqlUserDirectory",
    "UserModel",
    "UserService",
    "atomic",
    "build_workflow_engine",
    "get_db",
    "get_engine",
    "init_database",
]
