import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if ROOT.as_posix() not in sys.path:
    sys.path.insert(0, ROOT.as_posix())

SIGNED_AT = datetime(2011, 6, 24, 0, 9, 5, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock whose time only moves when a test advances it."""

    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(SIGNED_AT.timestamp())


@pytest.fixture()
def signed_at() -> datetime:
    return SIGNED_AT


@pytest.fixture(autouse=True)
def _clean_signing_env(monkeypatch):
    """Keep PULSESIGN_* variables from the host out of the tests."""

    for key in list(os.environ):
        if key.startswith("PULSESIGN_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("ENVIRONMENT", "test")
