"""
Exception hierarchy.

ConfigurationError subclasses abort startup. DatabaseAccessError subclasses are
per-call failures; the tool dispatcher wraps them into ToolError subclasses
before they reach the protocol layer.
"""


class SqlBridgeError(Exception):
    """Root of every error raised by sqlbridge."""


# --- startup ---


class ConfigurationError(SqlBridgeError):
    pass


class UnsupportedBackendError(ConfigurationError):
    """Connection URL scheme matches none of the supported backends."""


class UrlAdaptationError(ConfigurationError):
    """Connection URL could not be turned into the driver's grammar."""


# --- per call ---


class DatabaseAccessError(SqlBridgeError):
    pass


class ConnectFailedError(DatabaseAccessError):
    """Opening a new backend connection failed."""


class PoolExhaustedError(DatabaseAccessError):
    """No connection became free before the acquire timeout."""


class AcquireCancelledError(DatabaseAccessError):
    """The request was cancelled before a connection was handed to it."""


class QueryError(DatabaseAccessError):
    """The backend rejected or failed the statement."""


# --- tool surface ---


class ToolError(SqlBridgeError):
    pass


class UnknownOperationError(ToolError):
    pass


class InvalidArgumentsError(ToolError):
    pass


class ExecutionFailedError(ToolError):
    pass
