"""Exception hierarchy for the pingodoce package."""

from __future__ import annotations


class PingoDoceError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(PingoDoceError):
    """An ingested payload is missing a required field or is malformed."""


class ParseError(PingoDoceError):
    """A decimal or date string could not be parsed.

    Only raised by the strict parsers in ``normalize``; the lenient
    helpers catch it and return None.
    """


class ConfigurationError(PingoDoceError):
    """Configuration is missing or invalid."""


class APIError(PingoDoceError):
    """The retailer API returned an error or could not be reached."""


class NotFoundError(APIError):
    """The requested entity does not exist on the retailer side."""


class AuthenticationError(PingoDoceError):
    """Login failed or credentials are not configured."""


class NotAuthenticatedError(AuthenticationError):
    """An authenticated call was made before ``login()``."""


class StorageError(PingoDoceError):
    """A write to the local database failed and was rolled back."""


class ReconciliationError(StorageError):
    """A uniqueness constraint could not be resolved by find-or-create."""


class PersistenceError(StorageError):
    """The underlying SQLite database reported an error."""
