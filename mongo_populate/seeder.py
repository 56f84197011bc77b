"""Seed MongoDB collections from JSON files, directories or in-memory records.

Usage:
    populate = MongoPopulate(host="localhost", dbname="cit_test", overwrite=True)
    results = await populate.seed("seeds/")                  # one collection per file
    results = await populate.seed("seeds/flights.json")      # "flights" collection
    results = await populate.seed([{"name": "Ada"}], "crews")
"""

import asyncio
import logging
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from mongo_populate.config import SeederSettings
from mongo_populate.database import close, connect
from mongo_populate.errors import ConfigError, ProvisionError
from mongo_populate.inserts import insert_documents
from mongo_populate.models import CollectionTask, SeedResult, SeedState
from mongo_populate.provisioning import ensure_collection
from mongo_populate.sources import resolve

logger = logging.getLogger(__name__)


class MongoPopulate:
    """Orchestrates a seed run: connect, resolve input, provision, insert.

    Settings are fixed at construction time. Each seed() or drop() call opens
    its own client and closes it before returning, so one instance can be
    reused for many calls.
    """

    def __init__(self, settings: Optional[SeederSettings] = None, **options: Any):
        if settings is not None and options:
            raise ConfigError("Pass either a SeederSettings instance or keyword options, not both")
        unknown = sorted(set(options) - set(SeederSettings.model_fields))
        if unknown:
            raise ConfigError(f"Unknown seeder option(s): {', '.join(unknown)}")
        if settings is None:
            try:
                settings = SeederSettings(**options)
            except ValidationError as exc:
                raise ConfigError(f"Invalid seeder configuration: {exc}") from exc
        self.settings = settings
        self.state = SeedState.IDLE

    async def seed(self, seed_data: Any, collection_name: Optional[str] = None) -> list[SeedResult]:
        """Seed the database and return one SeedResult per collection.

        seed_data is a list of records (collection_name required), a path to a
        JSON file, or a path to a directory of JSON files. The result list is
        in collection order: file order for directories, a single element
        otherwise, empty if the path is neither a file nor a directory.

        All input is parsed before anything is written. Collections are then
        seeded concurrently; if any of them fails, the others still finish and
        the first failure is raised. Provisioning runs for every collection
        before any inserts start; a collection whose provisioning failed is
        not written to.
        """
        self.state = SeedState.CONNECTING
        try:
            db = await connect(self.settings)
        except BaseException:
            self.state = SeedState.FAILED
            raise

        try:
            self.state = SeedState.RESOLVING
            tasks = await resolve(seed_data, collection_name)

            # Every collection is provisioned before any collection is written to.
            self.state = SeedState.PROVISIONING
            results = list(
                await asyncio.gather(
                    *(ensure_collection(db, t.collection_name, self.settings.overwrite) for t in tasks),
                    return_exceptions=True,
                )
            )

            self.state = SeedState.INSERTING
            ready = [i for i, provisioned in enumerate(results) if not isinstance(provisioned, BaseException)]
            inserted = await asyncio.gather(
                *(self._insert_collection(db, tasks[i]) for i in ready),
                return_exceptions=True,
            )
            for i, result in zip(ready, inserted):
                results[i] = result

            for result in results:
                if isinstance(result, BaseException):
                    raise result
        except BaseException:
            self.state = SeedState.FAILED
            raise
        finally:
            close(db)

        self.state = SeedState.COMPLETED
        return results

    async def _insert_collection(self, db: AsyncIOMotorDatabase, task: CollectionTask) -> SeedResult:
        return await insert_documents(
            db,
            task.collection_name,
            task.documents,
            overwrite=self.settings.overwrite,
            verbose=self.settings.verbose,
            max_concurrency=self.settings.max_concurrency,
        )

    async def drop(self) -> None:
        """Drop the whole configured database."""
        db = await connect(self.settings)
        try:
            await db.client.drop_database(self.settings.dbname)
        except PyMongoError as exc:
            raise ProvisionError(f"Could not drop database '{self.settings.dbname}': {exc}") from exc
        finally:
            close(db)
        logger.info("Dropped database '%s'", self.settings.dbname)
