"""Pytest configuration and fixtures."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import create_access_token
from database import PotionStore
from main import app, get_store


class CountingCollection:
    """Proxy around a collection that counts every store operation."""

    def __init__(self, collection):
        self._collection = collection
        self.calls = 0

    def __getattr__(self, name):
        self.calls += 1
        return getattr(self._collection, name)


@pytest.fixture
def collection():
    return mongomock.MongoClient().db.potion


@pytest.fixture
def counting(collection):
    return CountingCollection(collection)


@pytest.fixture
def client(counting):
    """Test client wired to an in-memory store; the lifespan is not started."""
    app.dependency_overrides[get_store] = lambda: PotionStore(counting)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": "tester"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_potions(collection):
    """Four potions over three vendors; "C" has no category."""
    docs = [
        {
            "name": "A",
            "vendor_id": "v1",
            "price": 10,
            "score": 4,
            "categories": ["heal"],
            "ratings": {"strength": 6, "flavor": 3},
        },
        {
            "name": "B",
            "vendor_id": "v1",
            "price": 20,
            "score": 8,
            "categories": ["heal", "speed"],
            "ratings": {"strength": 4, "flavor": 2},
        },
        {
            "name": "C",
            "vendor_id": "v2",
            "price": 25,
            "score": 5,
            "categories": [],
            "ratings": {"strength": 9, "flavor": 3},
        },
        {
            "name": "D",
            "vendor_id": "V1",
            "price": 9.99,
            "score": 1,
            "categories": ["sleep"],
            "ratings": {"strength": 1, "flavor": 4},
        },
    ]
    res = collection.insert_many(docs)
    return {doc["name"]: str(_id) for doc, _id in zip(docs, res.inserted_ids)}
