from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

# A parsed JSON object, after Extended JSON shapes have been turned into BSON types.
Document = dict[str, Any]


class InMemorySource(BaseModel):
    """Records handed to seed() directly, e.g. seed([...], "crews")."""

    kind: Literal["memory"] = "memory"
    records: list[Any]
    collection_name: str = Field(..., min_length=1)


class FileSource(BaseModel):
    """A single JSON file. Its stem becomes the collection name."""

    kind: Literal["file"] = "file"
    path: str


class DirectorySource(BaseModel):
    """A directory whose immediate entries are all .json files."""

    kind: Literal["directory"] = "directory"
    path: str


SeedSource = Union[InMemorySource, FileSource, DirectorySource]


class CollectionTask(BaseModel):
    """One unit of seeding work: a list of documents bound for one collection."""

    collection_name: str = Field(..., min_length=1)
    documents: list[Document]
    source_path: Optional[str] = None  # None for in-memory records


class OutcomeKind(str, Enum):
    INSERTED = "inserted"
    DUPLICATE = "duplicate"
    FAILED = "failed"


class InsertOutcome(BaseModel):
    """Result of inserting a single document.

    DUPLICATE is a recoverable skip (unique-index conflict). FAILED is any
    other write error and fails the whole collection task.
    """

    kind: OutcomeKind
    error_code: Optional[int] = None
    message: Optional[str] = None

    @classmethod
    def inserted(cls) -> "InsertOutcome":
        return cls(kind=OutcomeKind.INSERTED)

    @classmethod
    def duplicate(cls, error_code: Optional[int], message: str) -> "InsertOutcome":
        return cls(kind=OutcomeKind.DUPLICATE, error_code=error_code, message=message)

    @classmethod
    def failed(cls, error_code: Optional[int], message: str) -> "InsertOutcome":
        return cls(kind=OutcomeKind.FAILED, error_code=error_code, message=message)


class SeedResult(BaseModel):
    """Aggregate outcome for one collection task."""

    collection_name: str
    inserted: int = 0
    skipped_duplicates: int = 0
    success: bool = True  # False iff a non-duplicate failure occurred


class SeedState(str, Enum):
    """Lifecycle of a single seed() call."""

    IDLE = "idle"
    CONNECTING = "connecting"
    RESOLVING = "resolving"
    PROVISIONING = "provisioning"
    INSERTING = "inserting"
    COMPLETED = "completed"
    FAILED = "failed"
