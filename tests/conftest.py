"""
Pytest configuration for Tubely tests
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from tubely.config import Settings
from tubely.main import create_app
from tubely.services.storage import ObjectStorage


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite file and assets dir"""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        secret_key="test-secret",
        assets_root=str(tmp_path / "assets"),
        public_host="localhost",
        port="8091",
        s3_bucket="test-bucket",
        s3_cf_distribution="https://cdn.example.com",
    )


@pytest.fixture
def storage():
    """ObjectStorage whose boto3 client is a mock"""
    return ObjectStorage("test-bucket", MagicMock())


@pytest.fixture
def client(settings, storage):
    app = create_app(settings, storage=storage)
    with TestClient(app) as test_client:
        yield test_client


def register(client, email, password="secret123"):
    """Create a user and log in; returns (user_id, auth headers)"""
    res = client.post("/api/users", json={"email": email, "password": password})
    assert res.status_code == 201, res.text
    res = client.post("/api/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    body = res.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


@pytest.fixture
def make_user(client):
    return lambda email, password="secret123": register(client, email, password)


@pytest.fixture
def owner(client):
    return register(client, "owner@example.com")


@pytest.fixture
def other_user(client):
    return register(client, "other@example.com")


@pytest.fixture
def video(client, owner):
    _, headers = owner
    res = client.post("/api/videos", json={"title": "Boot.dev beats", "description": "demo"}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()
