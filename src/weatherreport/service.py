# request boundary: validates input, consults the cache hook, runs the aggregator
# and turns error kinds into client-visible responses

from __future__ import annotations
import logging
import re
from typing import Any, Dict, Optional, Protocol, Tuple

from .aggregator import ReportAggregator
from .client import WeatherDataClient
from .config import Settings
from .errors import (
    InsufficientData,
    InvalidRequest,
    PersistenceFailed,
    UpstreamMalformedResponse,
    UpstreamUnavailable,
    WeatherReportError,
)
from .models import WeatherReport
from .store import ReportStore

logger = logging.getLogger(__name__)

MIN_DAYS = 1
MAX_DAYS = 30
# postal codes: letters, digits, inner spaces or hyphens, fits the weather_report.zip_code column
ZIP_PATTERN = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9 -]{0,14}[A-Za-z0-9])?")

# kind -> http status; the body only ever carries the kind
STATUS_BY_ERROR = {
    InvalidRequest: 400,
    InsufficientData: 422,
    UpstreamUnavailable: 502,
    UpstreamMalformedResponse: 502,
    PersistenceFailed: 500,
}


class ReportCache(Protocol):
    # extension point for serving reports without upstream round trips
    def get(self, zip_code: str, days: int) -> Optional[WeatherReport]: ...

    def put(self, zip_code: str, days: int, report: WeatherReport) -> None: ...


class NullReportCache:
    # always misses, every request builds a fresh report
    def get(self, zip_code: str, days: int) -> Optional[WeatherReport]:
        return None

    def put(self, zip_code: str, days: int, report: WeatherReport) -> None:
        return None


def validate_request(zip_code: Any, days: Any) -> Tuple[str, int]:
    """Normalise a raw (zip, days) request or raise InvalidRequest."""
    if not isinstance(zip_code, str) or not zip_code.strip():
        raise InvalidRequest("zip is required")
    if not ZIP_PATTERN.fullmatch(zip_code.strip()):
        raise InvalidRequest(f"zip is not a postal code (got {zip_code!r})")
    if days is None or isinstance(days, bool):
        raise InvalidRequest("days is required")
    try:
        n_days = int(str(days).strip())
    except ValueError as exc:
        raise InvalidRequest(f"days must be an integer (got {days!r})") from exc
    if not (MIN_DAYS <= n_days <= MAX_DAYS):
        raise InvalidRequest(f"days must be between {MIN_DAYS} and {MAX_DAYS} (got {n_days})")
    return zip_code.strip(), n_days


class ReportService:
    def __init__(
        self,
        aggregator: ReportAggregator,
        cache: Optional[ReportCache] = None,
        timeout: Optional[float] = None,
    ):
        self.aggregator = aggregator
        self.cache = cache or NullReportCache()
        self.timeout = timeout

    def get_report(self, zip_code: Any, days: Any) -> WeatherReport:
        zip_code, n_days = validate_request(zip_code, days)

        cached = self.cache.get(zip_code, n_days)
        if cached is not None:
            logger.info(f"Serving cached report for zip {zip_code} ({n_days} days)")
            return cached

        report = self.aggregator.build_report(zip_code, n_days, timeout=self.timeout)
        self.cache.put(zip_code, n_days, report)
        return report


def error_response(exc: WeatherReportError) -> Tuple[int, Dict[str, str]]:
    status = 500
    for error_type, code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            status = code
            break
    if status >= 500:
        logger.error(f"Report request failed ({exc.kind}): {exc}")
    return status, {"error": exc.kind}


def report_to_dict(report: WeatherReport) -> Dict[str, Any]:
    # lower camel case, same naming as the upstream payloads
    return {
        "id": report.id,
        "zipCode": report.zip_code,
        "createdOn": report.created_on.isoformat(),
        "rainfallTotalInches": str(report.rainfall_total_inches),
        "snowTotalInches": str(report.snow_total_inches),
        "averageHighF": str(report.average_high_f),
        "averageLowF": str(report.average_low_f),
    }


def build_service(settings: Optional[Settings] = None) -> ReportService:
    """Wire client, store and aggregator from settings (environment by default)."""
    settings = settings or Settings.from_env()
    client = WeatherDataClient(
        precipitation_url=settings.precipitation_url,
        temperature_url=settings.temperature_url,
        timeout=settings.upstream_timeout,
        max_retries=settings.upstream_max_retries,
    )
    store = ReportStore.from_url(settings.database_url)
    store.create_schema()
    aggregator = ReportAggregator(client, store, logger=logging.getLogger("weatherreport.aggregator"))
    return ReportService(aggregator, timeout=settings.report_timeout)
