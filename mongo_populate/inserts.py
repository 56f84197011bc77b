"""Concurrent, duplicate-tolerant document inserts.

Each document is written with its own insert_one so that one conflict does
not stop the others. The per-document outcomes are then reduced into a
SeedResult:

- duplicate-key conflicts are counted as skips and never raised
- any other write error fails the collection task with InsertError
"""

import asyncio
import copy
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from bson.errors import BSONError
from pymongo import WriteConcern
from pymongo.errors import DuplicateKeyError, PyMongoError

from mongo_populate.errors import InsertError
from mongo_populate.models import Document, InsertOutcome, OutcomeKind, SeedResult

logger = logging.getLogger(__name__)

# 11000 is the canonical duplicate-key code. 11001 (legacy updates) and
# 12582 (legacy mongos) report the same condition.
DUPLICATE_KEY_CODES = frozenset({11000, 11001, 12582})

# Acknowledged by the primary and journaled; no replica-set wait.
SEED_WRITE_CONCERN = WriteConcern(w=1, j=True)


def is_duplicate_key(exc: BaseException) -> bool:
    """True if a driver error is a unique-index conflict."""
    if isinstance(exc, DuplicateKeyError):
        return True
    return isinstance(exc, PyMongoError) and getattr(exc, "code", None) in DUPLICATE_KEY_CODES


async def insert_document(collection: AsyncIOMotorCollection, document: Document) -> InsertOutcome:
    """Insert one document and classify what happened."""
    try:
        await collection.insert_one(document)
    except (PyMongoError, BSONError) as exc:
        # BSONError: the document itself could not be encoded
        code = getattr(exc, "code", None)
        if is_duplicate_key(exc):
            return InsertOutcome.duplicate(code, str(exc))
        return InsertOutcome.failed(code, str(exc))
    return InsertOutcome.inserted()


def reduce_outcomes(collection_name: str, outcomes: list[InsertOutcome], verbose: bool = False) -> SeedResult:
    """Fold per-document outcomes into a SeedResult.

    Raises InsertError for the first hard failure, with the partial result
    attached (success=False).
    """
    result = SeedResult(collection_name=collection_name)
    first_failure: Optional[InsertOutcome] = None

    for outcome in outcomes:
        if outcome.kind == OutcomeKind.INSERTED:
            result.inserted += 1
        elif outcome.kind == OutcomeKind.DUPLICATE:
            result.skipped_duplicates += 1
            logger.log(
                logging.INFO if verbose else logging.DEBUG,
                "Skipped duplicate in '%s': %s",
                collection_name,
                outcome.message,
            )
        elif first_failure is None:
            first_failure = outcome

    if first_failure is not None:
        result.success = False
        raise InsertError(
            f"Insert into '{collection_name}' failed: {first_failure.message}",
            collection_name=collection_name,
            result=result,
            code=first_failure.error_code,
        )
    return result


async def insert_documents(
    db: AsyncIOMotorDatabase,
    collection_name: str,
    documents: list[Document],
    overwrite: bool = False,
    verbose: bool = False,
    max_concurrency: Optional[int] = None,
) -> SeedResult:
    """Insert every document into the collection, concurrently.

    Order of completion does not matter. max_concurrency caps how many
    inserts are in flight at once; None means all of them.
    """
    collection = db.get_collection(collection_name, write_concern=SEED_WRITE_CONCERN)
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _insert(document: Document) -> InsertOutcome:
        # Copy so the driver's generated _id doesn't leak into the caller's data
        payload = copy.copy(document)
        if semaphore is None:
            return await insert_document(collection, payload)
        async with semaphore:
            return await insert_document(collection, payload)

    outcomes = await asyncio.gather(*(_insert(doc) for doc in documents))
    result = reduce_outcomes(collection_name, outcomes, verbose=verbose)

    if result.skipped_duplicates and not overwrite:
        logger.info(
            "'%s': skipped %d document(s) that already exist",
            collection_name,
            result.skipped_duplicates,
        )
    logger.info("'%s': inserted %d document(s)", collection_name, result.inserted)
    return result
