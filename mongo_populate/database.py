"""MongoDB connection handling.

Unlike a long-running service, the seeder opens a fresh client for every
seed()/drop() call and closes it when the call finishes, so there is no
module-level singleton here.
"""

import logging
from urllib.parse import quote_plus

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from mongo_populate.config import SeederSettings
from mongo_populate.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)


def build_mongo_uri(settings: SeederSettings) -> str:
    """Build "mongodb://[user:pass@]host:port" from settings.

    Credentials are only embedded when both username and password are set.
    They are percent-escaped because pymongo rejects raw "@", ":" and "/".
    """
    auth = ""
    if settings.has_credentials:
        auth = f"{quote_plus(settings.username)}:{quote_plus(settings.password)}@"
    return f"mongodb://{auth}{settings.host}:{settings.port}"


async def connect(settings: SeederSettings) -> AsyncIOMotorDatabase:
    """Open a new client and return a handle to the configured database.

    Motor connects lazily, so a ping is issued to surface unreachable hosts
    and bad credentials here rather than on the first insert.
    """
    client_kwargs = {}
    if settings.server_selection_timeout_ms is not None:
        client_kwargs["serverSelectionTimeoutMS"] = settings.server_selection_timeout_ms

    client = AsyncIOMotorClient(build_mongo_uri(settings), **client_kwargs)
    try:
        await client.admin.command("ping")
    except PyMongoError as exc:
        client.close()
        raise DatabaseConnectionError(
            f"Could not connect to MongoDB at {settings.host}:{settings.port}: {exc}"
        ) from exc

    logger.debug("Connected to %s:%s/%s", settings.host, settings.port, settings.dbname)
    return client[settings.dbname]


def close(db: AsyncIOMotorDatabase) -> None:
    db.client.close()
