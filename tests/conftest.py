"""
Pytest configuration and fixtures

Every test gets its own data file and proof folder under tmp_path,
so nothing touches the real competition document.
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from storage import JsonStore
from tracker import Tracker


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "fitness-data.json", tmp_path / "proofs")


@pytest.fixture
def tracker(store):
    return Tracker(store)


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "DATA_DIR": str(tmp_path),
            "DATA_FILE": str(tmp_path / "fitness-data.json"),
            "PROOF_DIR": str(tmp_path / "proofs"),
            "LOG_LEVEL": "WARNING",
        }
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_tracker(app):
    return app.extensions["tracker"]
