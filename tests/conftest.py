import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import CollectionInvalid, DuplicateKeyError


class FakeCollection:
    """Just enough of a motor collection to exercise unique _id handling."""

    def __init__(self, name):
        self.name = name
        self.documents = {}
        self.exists = False
        self.write_concern = None
        self.insert_one = AsyncMock(side_effect=self._insert_one)

    async def _insert_one(self, document):
        if "_id" not in document:
            document["_id"] = ObjectId()
        if document["_id"] in self.documents:
            raise DuplicateKeyError(
                f"E11000 duplicate key error collection: {self.name} dup key: {{ _id: {document['_id']!r} }}",
                11000,
            )
        self.documents[document["_id"]] = document
        self.exists = True


class FakeDatabase:
    def __init__(self):
        self.collections = {}
        self.client = MagicMock()
        self.client.drop_database = AsyncMock(side_effect=self._drop_database)
        self.list_collection_names = AsyncMock(side_effect=self._list_collection_names)
        self.drop_collection = AsyncMock(side_effect=self._drop_collection)
        self.create_collection = AsyncMock(side_effect=self._create_collection)

    def get_collection(self, name, write_concern=None):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        collection = self.collections[name]
        collection.write_concern = write_concern
        return collection

    def existing(self):
        return sorted(name for name, c in self.collections.items() if c.exists)

    def count(self, name):
        return len(self.collections[name].documents) if name in self.collections else 0

    async def _list_collection_names(self, filter=None):
        names = self.existing()
        if filter and "name" in filter:
            names = [n for n in names if n == filter["name"]]
        return names

    async def _drop_collection(self, name):
        self.collections.pop(name, None)

    async def _create_collection(self, name):
        if name in self.existing():
            raise CollectionInvalid(f"collection {name} already exists")
        self.get_collection(name).exists = True

    async def _drop_database(self, name):
        self.collections.clear()


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def patched_connection(fake_db):
    """Route MongoPopulate's connect/close to the in-memory fake database."""
    with (
        patch("mongo_populate.seeder.connect", AsyncMock(return_value=fake_db)) as mock_connect,
        patch("mongo_populate.seeder.close", MagicMock()) as mock_close,
    ):
        yield mock_connect, mock_close


@pytest.fixture
def write_json(tmp_path):
    def _write(name, payload, directory=None):
        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(payload if isinstance(payload, str) else json.dumps(payload))
        return target

    return _write


@pytest.fixture
def flights():
    return [{"_id": 1, "code": "AA100"}, {"_id": 2, "code": "AA200"}]


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    # Keep MONGO_POPULATE_* variables and any local .env out of the tests.
    for var in ("HOST", "PORT", "DBNAME", "USERNAME", "PASSWORD", "OVERWRITE", "VERBOSE"):
        monkeypatch.delenv(f"MONGO_POPULATE_{var}", raising=False)
    monkeypatch.chdir(tmp_path)
