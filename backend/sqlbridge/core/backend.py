"""
Backend detection and connection URL adaptation.

classify_url() maps a connection URL onto one BackendFamily by its scheme prefix.
adapt_url() turns the URL into the string the family's driver consumes; only
SQL Server needs a rewrite (mssql:// -> jdbc:sqlserver://host;Key=Value).
"""

import re
from dataclasses import dataclass
from enum import Enum

from sqlbridge.core.errors import UnsupportedBackendError, UrlAdaptationError


class BackendFamily(str, Enum):
    """Supported database backends. Values are the display names used in db_status."""

    SQLITE = "SQLite"
    MYSQL = "MySQL"
    POSTGRES = "PostgreSQL"
    MSSQL = "MSSQL"


# Checked in order; matching is case-sensitive on the scheme token.
_PREFIXES: tuple[tuple[str, BackendFamily], ...] = (
    ("sqlite://", BackendFamily.SQLITE),
    ("mysql://", BackendFamily.MYSQL),
    ("postgres://", BackendFamily.POSTGRES),
    ("postgresql://", BackendFamily.POSTGRES),
    ("mssql://", BackendFamily.MSSQL),
    ("sqlserver://", BackendFamily.MSSQL),
    ("jdbc:sqlserver://", BackendFamily.MSSQL),
)

_MSSQL_SOURCE_PREFIXES = ("mssql://", "sqlserver://")
JDBC_SQLSERVER_PREFIX = "jdbc:sqlserver://"

# Query-string keys that the JDBC grammar spells capitalized.
_MSSQL_KEY_NAMES = {
    "user": "User",
    "password": "Password",
    "database": "Database",
}


def classify_url(url: str) -> BackendFamily:
    """Return the BackendFamily for *url*, or raise UnsupportedBackendError.

    Only the scheme prefix is inspected; the rest of the URL is left for the driver.
    """
    for prefix, family in _PREFIXES:
        if url.startswith(prefix):
            return family
    raise UnsupportedBackendError(
        f"Unsupported database URL format: {mask_url(url)} "
        "(expected sqlite://, mysql://, postgres://, postgresql://, mssql:// or sqlserver://)"
    )


def adapt_mssql_url(url: str) -> str:
    """
    mssql://[user[:pass]@]host[:port][/database][?k=v&...]
      -> jdbc:sqlserver://host[:port][;Database=db][;User=u][;Password=p][;K=v...]

    Strings without an mssql:// or sqlserver:// prefix are returned unchanged, so
    an already-adapted jdbc:sqlserver:// string passes through. Duplicate keys
    (e.g. database in both path and query) are emitted twice; the driver decides.
    """
    prefix = next((p for p in _MSSQL_SOURCE_PREFIXES if url.startswith(p)), None)
    if prefix is None:
        return url
    rest = url[len(prefix):]

    user: str | None = None
    password: str | None = None
    if "@" in rest:
        auth, rest = rest.split("@", 1)
        if ":" in auth:
            user, password = auth.split(":", 1)
        else:
            user = auth

    host_port_db, _, query = rest.partition("?")

    database: str | None = None
    if "/" in host_port_db:
        host_port, database = host_port_db.rsplit("/", 1)
    else:
        host_port = host_port_db
    if not host_port:
        raise UrlAdaptationError(f"SQL Server URL has no host: {mask_url(url)}")

    parts = [JDBC_SQLSERVER_PREFIX + host_port]
    if database is not None:
        parts.append(f"Database={database}")
    if user is not None:
        parts.append(f"User={user}")
    if password is not None:
        parts.append(f"Password={password}")

    for pair in query.split("&"):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        parts.append(f"{_MSSQL_KEY_NAMES.get(key, key)}={value}")

    return ";".join(parts)


def adapt_url(url: str, family: BackendFamily) -> str:
    """Return the driver-facing connection string for *family* (identity except MSSQL)."""
    if family == BackendFamily.MSSQL:
        return adapt_mssql_url(url)
    return url


_URL_PASSWORD_RE = re.compile(r"(://[^:/@?]*:)([^@]*)(@)")
_JDBC_PASSWORD_RE = re.compile(r"(;password=)([^;]*)", re.IGNORECASE)
_QUERY_PASSWORD_RE = re.compile(r"([?&]password=)([^&]*)", re.IGNORECASE)


def mask_url(url: str) -> str:
    """Hide passwords in *url* for logging."""
    masked = _URL_PASSWORD_RE.sub(r"\1***\3", url)
    masked = _JDBC_PASSWORD_RE.sub(r"\1***", masked)
    return _QUERY_PASSWORD_RE.sub(r"\1***", masked)


@dataclass(frozen=True)
class ConnectionDescriptor:
    """The configured URL with its backend family and driver-facing string."""

    url: str
    family: BackendFamily
    adapted_url: str

    @classmethod
    def from_url(cls, url: str) -> "ConnectionDescriptor":
        family = classify_url(url)
        return cls(url=url, family=family, adapted_url=adapt_url(url, family))

    def __repr__(self) -> str:
        return f"ConnectionDescriptor(url={mask_url(self.url)!r}, family={self.family.value})"
