# orchestration and business rules for one report build
# fetches both observation sets concurrently on a ThreadPoolExecutor, then reduces and persists
# the reducers are pure functions so they can be tested without any i/o

from __future__ import annotations
import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from .client import WeatherDataClient
from .errors import InsufficientData, InvalidRequest, UpstreamUnavailable
from .models import (
    PrecipitationRecord,
    TemperatureRecord,
    WeatherReport,
    WeatherType,
    mean,
    round_one,
)
from .store import ReportStore


def total_for_type(records: Iterable[PrecipitationRecord], weather_type: str) -> Decimal:
    # weather types compare case-insensitively, anything else is simply not counted
    wanted = weather_type.lower()
    return sum(
        (r.amount_inches for r in records if r.weather_type.lower() == wanted),
        Decimal(0),
    )


def precipitation_totals(records: Sequence[PrecipitationRecord]) -> Tuple[Decimal, Decimal]:
    """Rounded (rain, snow) totals; unrecognised weather types are ignored."""
    records = records or []
    rain = round_one(total_for_type(records, WeatherType.RAIN))
    snow = round_one(total_for_type(records, WeatherType.SNOW))
    return rain, snow


def average_temperatures(records: Sequence[TemperatureRecord]) -> Tuple[Decimal, Decimal]:
    """Rounded (average high, average low).

    A mean over zero observations is undefined, so an empty window raises
    InsufficientData instead of producing a made-up value.
    """
    if not records:
        raise InsufficientData("no temperature observations in the requested window")
    avg_high = round_one(mean([r.temp_high_f for r in records]))
    avg_low = round_one(mean([r.temp_low_f for r in records]))
    return avg_high, avg_low


class ReportAggregator:
    """Builds, persists and returns a WeatherReport for one zip code and day window.

    Holds no per-request state: every build gets its own executor and futures.
    """

    def __init__(
        self,
        client: WeatherDataClient,
        store: ReportStore,
        logger: Optional[logging.Logger] = None,
        max_workers: int = 2,
    ):
        self.client = client
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self.max_workers = max_workers

    def build_report(self, zip_code: str, days: int, timeout: Optional[float] = None) -> WeatherReport:
        if not zip_code:
            raise InvalidRequest("zip_code must be a non-empty string")

        precipitation, temperature = self._fetch_all(zip_code, days, timeout)

        rain, snow = precipitation_totals(precipitation)
        self.logger.info(
            f"zip:{zip_code} over last {days} days: total snow:{snow}, rain:{rain}",
            extra={"zip_code": zip_code, "days": days, "snow_total": str(snow), "rain_total": str(rain)},
        )

        avg_high, avg_low = average_temperatures(temperature)
        self.logger.info(
            f"zip:{zip_code} over last {days} days: lo temp:{avg_low}, hi temp:{avg_high}",
            extra={"zip_code": zip_code, "days": days, "average_low": str(avg_low), "average_high": str(avg_high)},
        )

        report = WeatherReport(
            zip_code=zip_code,
            created_on=datetime.now(timezone.utc),
            rainfall_total_inches=rain,
            snow_total_inches=snow,
            average_high_f=avg_high,
            average_low_f=avg_low,
        )
        # PersistenceFailed from the store propagates untouched
        return self.store.save(report)

    def _fetch_all(
        self, zip_code: str, days: int, timeout: Optional[float]
    ) -> Tuple[List[PrecipitationRecord], List[TemperatureRecord]]:
        # both fetches are independent, submit them together and join on both
        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="report-fetch")
        try:
            precip_future = pool.submit(self.client.fetch_precipitation, zip_code, days)
            temp_future = pool.submit(self.client.fetch_temperature, zip_code, days)
            futures = (precip_future, temp_future)

            done, pending = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)
            failed = _first_failure(futures, done)
            if failed is not None:
                _cancel(pending)
                # re-raise the original error kind from the upstream client
                failed.result()
            if pending:
                _cancel(pending)
                raise UpstreamUnavailable(
                    f"upstream fetch for zip {zip_code} did not finish within {timeout}s"
                )
            return precip_future.result(), temp_future.result()
        finally:
            # do not block on fetches that are already abandoned
            pool.shutdown(wait=False, cancel_futures=True)


def _first_failure(futures: Sequence[Future], done) -> Optional[Future]:
    # keep submission order so a precipitation failure wins over a temperature one
    for fut in futures:
        if fut in done and not fut.cancelled() and fut.exception() is not None:
            return fut
    return None


def _cancel(pending: Iterable[Future]) -> None:
    for fut in pending:
        fut.cancel()
