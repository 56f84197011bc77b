"""Error taxonomy for seeding.

Every failure that can reach the caller of MongoPopulate.seed() is a SeedError.
Duplicate-key conflicts are not errors here: the bulk inserter counts them
as skips and never raises them.
"""

from typing import Optional


class SeedError(Exception):
    """Base class for all seeding failures."""


class ConfigError(SeedError):
    """Bad construction or call arguments. Raised before any connection attempt."""


class DatabaseConnectionError(SeedError, ConnectionError):
    """The MongoDB server could not be reached or rejected our credentials."""


class FileError(SeedError):
    """A seed file is missing, unreadable or empty."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ParseError(FileError):
    """A seed file does not contain valid JSON."""


class FormatError(FileError):
    """Seed input has the wrong shape, e.g. a non-.json entry in a seed directory."""


class ProvisionError(SeedError):
    """Dropping or (re)creating a collection failed."""

    def __init__(self, message: str, collection_name: Optional[str] = None):
        super().__init__(message)
        self.collection_name = collection_name


class InsertError(SeedError):
    """A document insert failed for a reason other than a duplicate key.

    ``result`` holds the partial SeedResult for the collection (success=False),
    so callers can see how many documents made it in before the failure.
    """

    def __init__(self, message: str, collection_name: str, result=None, code: Optional[int] = None):
        super().__init__(message)
        self.collection_name = collection_name
        self.result = result
        self.code = code
