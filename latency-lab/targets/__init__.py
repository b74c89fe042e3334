"""
Target definitions for latency benchmarking.
"""

from .backends import (
    DATABASE,
    HTTP,
    Backend,
    DatabaseBackend,
    HttpBackend,
    MySQLBackend,
    PostgresBackend,
    SQLiteBackend,
    backend_for_url,
    validate_table_name,
)

from .definitions import (
    DEFAULT_DATABASE_URL,
    Target,
    default_target_name,
    load_targets,
    make_target,
    resolve_target,
)

__all__ = [
    "DATABASE",
    "HTTP",
    "Backend",
    "DatabaseBackend",
    "HttpBackend",
    "MySQLBackend",
    "PostgresBackend",
    "SQLiteBackend",
    "backend_for_url",
    "validate_table_name",
    "DEFAULT_DATABASE_URL",
    "Target",
    "default_target_name",
    "load_targets",
    "make_target",
    "resolve_target",
]
