"""Adapter-specific exceptions."""


class AdapterError(Exception):
    """Base exception for index adapter errors."""


class ConnectionError(AdapterError):
    """Raised when the adapter cannot connect to the index backend."""


class QueryError(AdapterError):
    """Raised when a search query fails for a reason other than its syntax."""


class QueryParseError(QueryError):
    """Raised when the backend rejects a query string as malformed."""


class IndexOperationError(AdapterError):
    """Raised when creating, deleting or writing to the index fails."""


class ConfigurationError(AdapterError):
    """Raised when adapter configuration is invalid."""
