import os
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

# Settings are read at import time, so the test database must be chosen first.
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="carecrew-tests-"))
os.environ["CARECREW_DB_PATH"] = str(_TEST_DATA_DIR / "carecrew.sqlite3")
os.environ["SESSION_DB_PATH"] = str(_TEST_DATA_DIR / "sessions.sqlite3")
os.environ["SESSION_BACKEND"] = "memory"
os.environ["CORS_ORIGINS"] = "https://frontend.example.com"
os.environ.pop("TRUSTED_HOSTS", None)


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from carecrew.main import app

    with TestClient(app) as test_client:
        yield test_client
