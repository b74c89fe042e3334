"""
Backend families.

One class per family of target (MySQL, PostgreSQL, SQLite, HTTP). The
family is picked once from the target URL and then answers every
driver-specific question: which connection details to show, what the
probe query looks like, whether the query cache can be bypassed.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlsplit

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from harness.errors import InvalidConfiguration

DATABASE = "database"
HTTP = "http"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def validate_table_name(table: str) -> str:
    """Accept ``table`` or ``schema.table`` identifiers only."""
    if not _IDENTIFIER.match(table):
        raise InvalidConfiguration(f"Invalid table name: {table!r}")
    return table


class Backend(ABC):
    """A family of targets."""

    family: str = ""
    kind: str = DATABASE
    supports_query_cache: bool = False

    def __init__(self, url: str):
        self.url = url

    @property
    def driver(self) -> str:
        return self.family

    @abstractmethod
    def connection_details(self) -> dict[str, str]:
        """Setting/value pairs describing the target (never secrets)."""

    def probe_query(self, table: Optional[str] = None, no_cache: bool = False) -> str:
        """Query used by ping benchmarks."""
        if table:
            return f"SELECT * FROM {validate_table_name(table)} LIMIT 1"
        return "SELECT 1 AS result"


class DatabaseBackend(Backend):
    """SQL database reachable through SQLAlchemy."""

    default_port: Optional[int] = None

    def __init__(self, url: str):
        super().__init__(url)
        try:
            self.sa_url: URL = make_url(url)
        except ArgumentError as e:
            raise InvalidConfiguration(f"Invalid database URL: {e}") from e

    @property
    def driver(self) -> str:
        return self.sa_url.drivername

    def _server_details(self) -> dict[str, str]:
        port = self.sa_url.port or self.default_port
        return {
            "Host": self.sa_url.host or "N/A",
            "Port": str(port) if port else "N/A",
            "Database": self.sa_url.database or "N/A",
        }


class MySQLBackend(DatabaseBackend):
    family = "mysql"
    supports_query_cache = True
    default_port = 3306

    def connection_details(self) -> dict[str, str]:
        details = self._server_details()
        details["Charset"] = self.sa_url.query.get("charset", "N/A")
        details["SQL_NO_CACHE Support"] = "Yes"
        return details

    def probe_query(self, table: Optional[str] = None, no_cache: bool = False) -> str:
        query = super().probe_query(table)
        if no_cache:
            return query.replace("SELECT", "SELECT SQL_NO_CACHE", 1)
        return query


class PostgresBackend(DatabaseBackend):
    family = "postgresql"
    default_port = 5432

    def connection_details(self) -> dict[str, str]:
        details = self._server_details()
        details["Schema"] = self.sa_url.query.get("schema", "public")
        details["SQL_NO_CACHE Support"] = "No (PostgreSQL)"
        return details


class SQLiteBackend(DatabaseBackend):
    family = "sqlite"

    def connection_details(self) -> dict[str, str]:
        return {
            "Database": self.sa_url.database or ":memory:",
            "SQL_NO_CACHE Support": "No (SQLite)",
        }


class HttpBackend(Backend):
    """HTTP(S) endpoint."""

    family = "http"
    kind = HTTP

    def __init__(self, url: str):
        super().__init__(url)
        self.parts = urlsplit(url)
        if not self.parts.netloc:
            raise InvalidConfiguration(f"Invalid HTTP URL: {url!r}")

    @property
    def driver(self) -> str:
        return self.parts.scheme

    def connection_details(self) -> dict[str, str]:
        port = self.parts.port or (443 if self.parts.scheme == "https" else 80)
        return {
            "Scheme": self.parts.scheme,
            "Host": self.parts.hostname or "N/A",
            "Port": str(port),
            "Path": self.parts.path or "/",
        }

    def probe_query(self, table: Optional[str] = None, no_cache: bool = False) -> str:
        return self.url


DATABASE_BACKENDS: dict[str, type[DatabaseBackend]] = {
    "mysql": MySQLBackend,
    "mariadb": MySQLBackend,
    "postgresql": PostgresBackend,
    "sqlite": SQLiteBackend,
}


def backend_for_url(url: str) -> Backend:
    """Pick the backend family for a target URL."""
    scheme = urlsplit(url).scheme.lower()
    if scheme in ("http", "https"):
        return HttpBackend(url)

    try:
        backend_name = make_url(url).get_backend_name()
    except ArgumentError as e:
        raise InvalidConfiguration(f"Invalid target URL {url!r}: {e}") from e

    backend_cls = DATABASE_BACKENDS.get(backend_name)
    if backend_cls is None:
        supported = ", ".join(sorted(DATABASE_BACKENDS) + ["http", "https"])
        raise InvalidConfiguration(
            f"Unsupported target family {backend_name!r} (supported: {supported})"
        )
    return backend_cls(url)
