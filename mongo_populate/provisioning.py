import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from mongo_populate.errors import ProvisionError

logger = logging.getLogger(__name__)


async def collection_exists(db: AsyncIOMotorDatabase, collection_name: str) -> bool:
    names = await db.list_collection_names(filter={"name": collection_name})
    return collection_name in names


async def ensure_collection(db: AsyncIOMotorDatabase, collection_name: str, overwrite: bool) -> bool:
    """Prepare a collection for seeding.

    Without overwrite this does nothing: MongoDB creates the collection on
    the first insert. With overwrite the collection is dropped (if present)
    and recreated empty, which also discards every secondary index.

    Returns True if the collection was (re)created.
    """
    if not overwrite:
        return False

    try:
        if await collection_exists(db, collection_name):
            logger.debug("Dropping existing collection '%s'", collection_name)
            await db.drop_collection(collection_name)
        await db.create_collection(collection_name)
    except PyMongoError as exc:
        raise ProvisionError(
            f"Could not recreate collection '{collection_name}': {exc}",
            collection_name=collection_name,
        ) from exc

    logger.info("Recreated collection '%s'", collection_name)
    return True
