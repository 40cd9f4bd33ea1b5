"""Report store tests against an in-memory SQLite database."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session

from weatherreport.errors import PersistenceFailed
from weatherreport.models import WeatherReport
from weatherreport.store import ReportStore, WeatherReportRow


def make_report(zip_code="84101", created_on=None, **overrides):
    fields = dict(
        zip_code=zip_code,
        created_on=created_on or datetime(2022, 3, 8, 12, tzinfo=timezone.utc),
        rainfall_total_inches=Decimal("2.0"),
        snow_total_inches=Decimal("0.3"),
        average_high_f=Decimal("72.0"),
        average_low_f=Decimal("52.0"),
    )
    fields.update(overrides)
    return WeatherReport(**fields)


def count_rows(store):
    with Session(store.engine) as session:
        return session.scalar(select(func.count()).select_from(WeatherReportRow))


def test_save_assigns_identifier(store):
    report = make_report()

    saved = store.save(report)

    assert saved.id is not None
    assert saved == report.with_id(saved.id)
    assert report.id is None
    assert count_rows(store) == 1


def test_saved_report_round_trips(store):
    saved = store.save(make_report())

    loaded = store.get(saved.id)

    assert loaded == saved
    assert loaded.created_on.tzinfo is not None


def test_each_save_is_a_new_row(store):
    first = store.save(make_report())
    second = store.save(make_report())
    assert first.id != second.id
    assert count_rows(store) == 2


def test_get_missing_report(store):
    assert store.get(999) is None


def test_latest_report_for_zip(store):
    base = datetime(2022, 3, 8, 12, tzinfo=timezone.utc)
    store.save(make_report(created_on=base))
    newest = store.save(make_report(created_on=base + timedelta(days=1), average_high_f=Decimal("65.5")))
    store.save(make_report(zip_code="90001", created_on=base + timedelta(days=2)))

    assert store.latest("84101") == newest
    assert store.latest("00000") is None


def test_write_failure_is_persistence_failed():
    # no schema created, so the insert cannot succeed
    store = ReportStore(create_engine("sqlite://"))

    with pytest.raises(PersistenceFailed):
        store.save(make_report())


def test_from_url_file_database(tmp_path):
    store = ReportStore.from_url(f"sqlite:///{tmp_path / 'reports.db'}")
    store.create_schema()
    assert store.save(make_report()).id == 1
