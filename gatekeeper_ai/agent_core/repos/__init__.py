"""Persistence for the audit log and checkpoints.

- ``interfaces``: Protocols the pipeline depends on.
- ``memory``: in-process implementations.
- ``sql``: async SQLAlchemy implementations (SQLite via aiosqlite, or PostgreSQL).
"""

from .interfaces import AuditLogRepository, CheckpointRepository
from .memory import InMemoryAuditLogRepository, InMemoryCheckpointRepository
from .sql import (
    SqlAuditLogRepository,
    SqlCheckpointRepository,
    SqlRepoBundle,
    build_sql_repos,
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "AuditLogRepository",
    "CheckpointRepository",
    "InMemoryAuditLogRepository",
    "InMemoryCheckpointRepository",
    "SqlAuditLogRepository",
    "SqlCheckpointRepository",
    "SqlRepoBundle",
    "build_sql_repos",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
