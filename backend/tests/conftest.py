import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Keep tests in-process: no Sentry, no on-disk store
os.environ["SENTRY_DSN"] = ""
os.environ["STORAGE_BACKEND"] = "memory"

from backend.app.kv import MemoryKV  # noqa: E402
from backend.app.main import create_app  # noqa: E402
from backend.app.settings import settings  # noqa: E402
from backend.app.storage import ReservationStore  # noqa: E402


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(settings, "STRICT_CAPACITY_GUARD", False)
    monkeypatch.setattr(settings, "BOOKING_MAX_ATTEMPTS", 3)
    monkeypatch.setattr(settings, "SUGGESTION_WINDOW_MINUTES", 120)
    monkeypatch.setattr(settings, "SUGGESTION_MAX_SLOTS", 16)
    yield


@pytest.fixture
def kv() -> MemoryKV:
    return MemoryKV()


@pytest.fixture
def store(kv: MemoryKV) -> ReservationStore:
    return ReservationStore(kv)


@pytest.fixture
def client(kv: MemoryKV) -> TestClient:
    return TestClient(create_app(kv), base_url="http://api.testserver")
