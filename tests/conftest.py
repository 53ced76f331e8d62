"""
Pytest configuration for bootstrap tests.

Provides an in-memory stand-in for a pymongo Database that honours the
server behaviours the bootstrap relies on (NamespaceExists on duplicate
create, index option/key conflicts), and a live database fixture that is
only available when TEST_DATABASE_URL is set.
"""
import copy
import os
import uuid

import pytest
from pymongo.errors import OperationFailure


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.indexes = {"_id_": {"v": 2, "key": [("_id", 1)]}}
        self.create_index_calls = 0

    def index_information(self):
        return copy.deepcopy(self.indexes)

    def create_index(self, keys, **options):
        self.create_index_calls += 1
        keys = [tuple(k) for k in keys]
        name = options.pop("name", None) or "_".join(f"{f}_{d}" for f, d in keys)
        entry = {"v": 2, "key": keys, **options}

        for existing_name, existing in self.indexes.items():
            if existing["key"] == keys:
                if existing == entry and existing_name == name:
                    return name
                raise OperationFailure(f"Index already exists with different options: {existing_name}", code=85)
        if name in self.indexes:
            raise OperationFailure(f"Index with name: {name} already exists with different key spec", code=86)

        self.indexes[name] = entry
        return name


class FakeDatabase:
    def __init__(self, name="restaurant_app"):
        self.name = name
        self.collections = {}
        self.commands = []

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = {"collection": FakeCollection(name), "options": {}}
        return self.collections[name]["collection"]

    def list_collections(self, filter=None):
        wanted = (filter or {}).get("name")
        return [
            {"name": name, "type": "collection", "options": copy.deepcopy(entry["options"])}
            for name, entry in self.collections.items()
            if wanted is None or name == wanted
        ]

    def create_collection(self, name, check_exists=True, **options):
        if name in self.collections:
            raise OperationFailure(f"Collection {self.name}.{name} already exists.", code=48)
        self.collections[name] = {"collection": FakeCollection(name), "options": copy.deepcopy(options)}
        return self.collections[name]["collection"]

    def command(self, command, value=None, **kwargs):
        self.commands.append((command, value, kwargs))
        if command == "ping":
            return {"ok": 1.0}
        if command == "collMod":
            self.collections[value]["options"]["validator"] = copy.deepcopy(kwargs["validator"])
            return {"ok": 1.0}
        raise OperationFailure(f"no such command: '{command}'", code=59)


class FakeClient:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate config tests from the caller's environment and any .env file."""
    for var in ("DATABASE_URL", "DATABASE_NAME", "DATABASE_TIMEOUT_MS", "BOOTSTRAP_SYNC_VALIDATORS"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def live_db():
    """A throwaway database on a real MongoDB server."""
    url = os.getenv("TEST_DATABASE_URL")
    if not url:
        pytest.skip("TEST_DATABASE_URL not set")

    from pymongo import MongoClient

    client = MongoClient(url, serverSelectionTimeoutMS=5000)
    db = client[f"bootstrap_test_{uuid.uuid4().hex[:8]}"]
    try:
        yield db
    finally:
        client.drop_database(db.name)
        client.close()
