"""Data layer error hierarchy."""

from roost.errors import RoostError


class DataError(RoostError):
    """Base for all roost.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when a connection URL names a database roost can't drive."""


class QueryError(DataError):
    """Raised when a SQL statement fails."""
