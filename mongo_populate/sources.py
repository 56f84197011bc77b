"""Turn seed input into CollectionTasks.

seed() accepts three shapes of input:
- a list of records plus a collection name (in-memory)
- a path to a single JSON file
- a path to a directory of JSON files, one collection per file

Everything is read and parsed up front, so a bad file anywhere in a
directory fails the whole call before a single document is written.
"""

import asyncio
import json
import logging
import os
import stat
from datetime import timezone
from pathlib import Path
from typing import Any, Optional, Union

from bson import json_util
from bson.errors import BSONError
from bson.json_util import JSONMode, JSONOptions
from pydantic import ValidationError

from mongo_populate.errors import ConfigError, FileError, FormatError, ParseError
from mongo_populate.models import (
    CollectionTask,
    DirectorySource,
    Document,
    FileSource,
    InMemorySource,
    SeedSource,
)

logger = logging.getLogger(__name__)

SEED_FILE_EXTENSION = ".json"

# Extended JSON ({"$oid": ...}, {"$date": ...}, ...) is decoded to BSON types.
# Dates come back timezone-aware in UTC.
JSON_OPTIONS = JSONOptions(json_mode=JSONMode.RELAXED, tz_aware=True, tzinfo=timezone.utc)

PathLike = Union[str, os.PathLike]


def normalize_documents(value: Any) -> Any:
    """Apply the Extended JSON object hook bottom-up, like json.loads would."""
    if isinstance(value, dict):
        converted = {key: normalize_documents(item) for key, item in value.items()}
        return json_util.object_hook(converted, json_options=JSON_OPTIONS)
    if isinstance(value, (list, tuple)):
        return [normalize_documents(item) for item in value]
    return value


def _normalize_or_raise(value: Any, origin: str, error_cls: type, path: Optional[str] = None) -> Any:
    # Malformed Extended JSON (bad $oid, unparseable $date, ...) surfaces as
    # BSONError, ValueError or TypeError from the bson decoder.
    try:
        return normalize_documents(value)
    except (BSONError, ValueError, TypeError) as exc:
        raise error_cls(f"{origin} contains invalid Extended JSON: {exc}", path=path) from exc


def _as_document_list(value: Any, origin: str, path: Optional[str] = None) -> list[Document]:
    # A bare object is treated as a one-document collection.
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list) and all(isinstance(item, dict) for item in value):
        return value
    raise FormatError(
        f"{origin} must contain a JSON object or an array of objects",
        path=path,
    )


def classify_source(seed_data: Any, collection_name: Optional[str] = None) -> Optional[SeedSource]:
    """Decide what kind of seed input we were given.

    Returns None for filesystem entries that are neither regular files nor
    directories (sockets, FIFOs, devices); those are skipped, not rejected.
    """
    if isinstance(seed_data, (list, tuple)):
        if not collection_name:
            raise ConfigError("A collection name is required when seeding from in-memory data")
        return InMemorySource(records=list(seed_data), collection_name=collection_name)

    if not isinstance(seed_data, (str, os.PathLike)):
        raise ConfigError(
            f"Seed data must be a list of records or a path, got {type(seed_data).__name__}"
        )

    path = os.fspath(seed_data)
    try:
        mode = os.stat(path).st_mode
    except OSError as exc:
        raise FileError(f"Cannot access seed path {path}: {exc.strerror}", path=path) from exc

    if stat.S_ISDIR(mode):
        return DirectorySource(path=path)
    if stat.S_ISREG(mode):
        return FileSource(path=path)
    return None


def _read_bytes(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FileError(f"Cannot read seed file {path}: {exc.strerror}", path=path) from exc


async def load_documents(path: PathLike) -> list[Document]:
    """Read, parse and normalize one seed file."""
    path = os.fspath(path)
    raw = await asyncio.to_thread(_read_bytes, path)
    if not raw.strip():
        raise FileError(f"Seed file {path} is empty", path=path)

    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        # Covers JSONDecodeError and UnicodeDecodeError
        raise ParseError(f"Seed file {path} is not valid JSON: {exc}", path=path) from exc

    normalized = _normalize_or_raise(parsed, origin=path, error_cls=ParseError, path=path)
    return _as_document_list(normalized, origin=path, path=path)


def _collection_name_for(path: str) -> str:
    return Path(path).stem


def _list_seed_files(directory: str) -> list[str]:
    """Immediate entries of a seed directory, all of which must be .json files."""
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as exc:
        raise FileError(f"Cannot list seed directory {directory}: {exc.strerror}", path=directory) from exc

    for entry in entries:
        if Path(entry.name).suffix.lower() != SEED_FILE_EXTENSION:
            raise FormatError(
                f"Seed directory {directory} contains a non-JSON entry: {entry.name}",
                path=entry.path,
            )
    return [entry.path for entry in entries]


async def _task_from_file(path: str) -> CollectionTask:
    name = _collection_name_for(path)
    if not name:
        raise FormatError(f"Cannot derive a collection name from {path}", path=path)
    documents = await load_documents(path)
    return CollectionTask(collection_name=name, documents=documents, source_path=path)


async def _tasks_from_directory(directory: str) -> list[CollectionTask]:
    paths = _list_seed_files(directory)

    # Every read is awaited, even after one fails, so no error is left unobserved.
    results = await asyncio.gather(*(_task_from_file(p) for p in paths), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


async def resolve(seed_data: Any, collection_name: Optional[str] = None) -> list[CollectionTask]:
    """Normalize any supported seed input into a list of CollectionTasks.

    In-memory data yields exactly one task under the caller's collection name.
    A file yields one task named after the file's stem. A directory yields one
    task per file. Unsupported filesystem entries yield no tasks.
    """
    source = classify_source(seed_data, collection_name)

    if source is None:
        logger.warning("Skipping %s: not a regular file or directory", seed_data)
        return []

    if isinstance(source, InMemorySource):
        origin = f"records for '{source.collection_name}'"
        normalized = _normalize_or_raise(source.records, origin=origin, error_cls=FormatError)
        documents = _as_document_list(normalized, origin=origin)
        try:
            return [CollectionTask(collection_name=source.collection_name, documents=documents)]
        except ValidationError as exc:
            # e.g. non-string field names
            raise FormatError(f"{origin} are not valid documents: {exc}") from exc

    if isinstance(source, DirectorySource):
        tasks = await _tasks_from_directory(source.path)
        logger.debug("Resolved %d collection(s) from %s", len(tasks), source.path)
        return tasks

    return [await _task_from_file(source.path)]
