import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from network_blocker import install_network_blocker
from sensing_fakes import FakeClock, FakeSleep

from tracking.models import TrackerSettings


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RIDE_TELEMETRY_API_BASE_URL", "http://localhost:5000/api")
    install_network_blocker(monkeypatch)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def settings() -> TrackerSettings:
    # The periodic flush check is exercised on its own; keep it out of the way.
    return TrackerSettings(flush_check_interval_seconds=None)
