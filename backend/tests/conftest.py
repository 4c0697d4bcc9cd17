"""Shared pytest fixtures for the baby log tests."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from db import ensure_schema
from main import app
from repo_slots import SlotRepo
from service_records import RecordStore
from settings import settings

FIXED_NOW = datetime(2026, 1, 2, 15, 4, 5)


@pytest.fixture
def storage_path(tmp_path, monkeypatch):
    """Point storage at a fresh SQLite file with the table created."""
    path = tmp_path / "babylog" / "storage.db"
    monkeypatch.setattr(settings, "storage_path", str(path))
    ensure_schema()
    return path


@pytest.fixture
def repo(storage_path):
    return SlotRepo()


@pytest.fixture
def store(repo):
    """Initialized store with a frozen clock."""
    record_store = RecordStore(repo, clock=lambda: FIXED_NOW)
    record_store.init()
    yield record_store
    record_store.teardown()


@pytest.fixture
def client(storage_path):
    """Test client with the app lifespan (store init/teardown) running."""
    with TestClient(app) as test_client:
        yield test_client
