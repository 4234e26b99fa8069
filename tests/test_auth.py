"""Tests for the bearer-token gate on mutating routes."""

from datetime import timedelta

import pytest
from jose import jwt

from auth import ALGORITHM, create_access_token


@pytest.fixture
def expired_headers():
    token = create_access_token({"sub": "tester"}, expires_delta=timedelta(minutes=-1))
    return {"Authorization": f"Bearer {token}"}


class TestAuthGate:
    def test_create_without_token(self, client, collection, counting):
        resp = client.post("/potions/new", json={"name": "Sneaky"})

        assert resp.status_code == 401
        assert "error" in resp.json()
        assert counting.calls == 0
        assert collection.count_documents({}) == 0

    def test_create_with_wrong_signature(self, client, collection):
        token = jwt.encode({"sub": "tester"}, "not-the-key", algorithm=ALGORITHM)

        resp = client.post("/potions/new", json={"name": "Sneaky"}, headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert collection.count_documents({}) == 0

    def test_token_without_subject(self, client, collection):
        token = create_access_token({"role": "admin"})

        resp = client.post("/potions/new", json={"name": "Sneaky"}, headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 401

    def test_expired_token(self, client, sample_potions, expired_headers):
        resp = client.delete(f"/potions/delete/{sample_potions['A']}", headers=expired_headers)

        assert resp.status_code == 401
        assert len(client.get("/potions").json()) == 4

    def test_update_requires_token(self, client, collection, sample_potions):
        resp = client.put(f"/potions/replace/{sample_potions['A']}", json={"score": 0})

        assert resp.status_code == 401
        assert collection.find_one({"name": "A"})["score"] == 4

    def test_reads_are_open(self, client, sample_potions):
        assert client.get("/potions").status_code == 200
        assert client.get("/potions/analytics/distinct-categories").status_code == 200

    def test_non_bearer_scheme_is_rejected(self, client, collection):
        resp = client.post("/potions/new", json={"name": "Sneaky"}, headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert resp.status_code == 401
        assert resp.json() == {"error": "Not authenticated"}
        assert collection.count_documents({}) == 0


def test_docs_advertise_plain_bearer_scheme(client):
    schemes = client.get("/openapi.json").json()["components"]["securitySchemes"]

    assert schemes == {"HTTPBearer": {"type": "http", "scheme": "bearer"}}
