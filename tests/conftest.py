"""Shared fixtures: payload files, record builders, an in-memory store and fake collaborators."""
import json
import threading
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool

from weatherreport.models import PrecipitationRecord, TemperatureRecord
from weatherreport.store import ReportStore

DATA_DIR = Path(__file__).parent / "data"
ZIP = "84101"
WHEN = datetime(2022, 3, 1, 8, tzinfo=timezone.utc)


def load_payload(name):
    return (DATA_DIR / name).read_text()


def precip(weather_type, amount, zip_code=ZIP):
    return PrecipitationRecord(
        created_on=WHEN, amount_inches=Decimal(str(amount)), weather_type=weather_type, zip_code=zip_code
    )


def temp(high, low, zip_code=ZIP):
    return TemperatureRecord(
        created_on=WHEN, temp_high_f=Decimal(str(high)), temp_low_f=Decimal(str(low)), zip_code=zip_code
    )


class FakeClient:
    """Stands in for WeatherDataClient; records which thread served each call."""

    def __init__(self, precipitation=None, temperature=None, precip_error=None, temp_error=None):
        self.precipitation = precipitation or []
        self.temperature = temperature or []
        self.precip_error = precip_error
        self.temp_error = temp_error
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, name, zip_code, days):
        with self._lock:
            self.calls.append((name, zip_code, days, threading.current_thread().name))

    def fetch_precipitation(self, zip_code, days):
        self._record("precipitation", zip_code, days)
        if self.precip_error:
            raise self.precip_error
        return list(self.precipitation)

    def fetch_temperature(self, zip_code, days):
        self._record("temperature", zip_code, days)
        if self.temp_error:
            raise self.temp_error
        return list(self.temperature)


class RecordingStore:
    """Report store double that counts writes and hands out sequential ids."""

    def __init__(self, error=None):
        self.saved = []
        self.error = error

    def save(self, report):
        if self.error:
            raise self.error
        stored = report.with_id(len(self.saved) + 1)
        self.saved.append(stored)
        return stored


@pytest.fixture
def store():
    # one shared in-memory connection so every session sees the same tables
    s = ReportStore.from_url("sqlite://", poolclass=StaticPool)
    s.create_schema()
    yield s
    s.engine.dispose()


@pytest.fixture
def recording_store():
    return RecordingStore()
