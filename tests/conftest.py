import pytest
from fastapi.testclient import TestClient

from cardio_intake.config import Settings
from cardio_intake.main import create_app
from cardio_intake.store import RecordStore


@pytest.fixture()
def settings(tmp_path):
    return Settings(database_url=f"sqlite:///{tmp_path / 'records.db'}")


@pytest.fixture()
def store(settings):
    store = RecordStore.from_settings(settings)
    store.create_schema()
    return store


@pytest.fixture()
def client(settings, store):
    with TestClient(create_app(settings, store=store)) as c:
        yield c
