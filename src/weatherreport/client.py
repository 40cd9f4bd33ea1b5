# OOP boundary for external i/o
# all http, decoding and transport retries live here, so the rest of the code is pure and testable
# use a thread-local session per ThreadPoolExecutor worker

from __future__ import annotations
import json
import threading
from decimal import Decimal
from typing import Any, Callable, List, TypeVar
import requests
from requests.adapters import HTTPAdapter
from requests.utils import quote
from urllib3.util.retry import Retry

from .errors import UpstreamMalformedResponse, UpstreamUnavailable
from .models import PrecipitationRecord, TemperatureRecord

T = TypeVar("T")


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not valid JSON numbers
    raise ValueError(f"non-finite number {name} in payload")


class WeatherDataClient:
    # encapsulates the two observation services: base URLs, timeouts, transport policy
    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        precipitation_url: str,
        temperature_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 0,
        backoff_factor: float = 0.5,
        user_agent: str = "weather-report/0.1",
    ):
        self.precipitation_url = precipitation_url.rstrip("/")
        self.temperature_url = temperature_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent

        # each worker thread lazily obtains its own session through _session()
        self._local = threading.local()

        # zero by default: the report build itself never retries, operators can opt in
        self._retry = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            raise_on_status=False,
        )

    def _build_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update({"User-Agent": self.user_agent, "Accept": "application/json"})
        adapter = HTTPAdapter(max_retries=self._retry)
        s.mount("http://", adapter)
        s.mount("https://", adapter)
        return s

    def _session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self._build_session()
            self._local.session = sess
        return sess

    def fetch_precipitation(self, zip_code: str, days: int) -> List[PrecipitationRecord]:
        return self._fetch_observations(
            self.precipitation_url, zip_code, days, PrecipitationRecord.from_payload
        )

    def fetch_temperature(self, zip_code: str, days: int) -> List[TemperatureRecord]:
        return self._fetch_observations(
            self.temperature_url, zip_code, days, TemperatureRecord.from_payload
        )

    def submit_temperature(self, record: TemperatureRecord) -> None:
        # ingestion write path of the temperature service, not used by report builds
        url = f"{self.temperature_url}/observation"
        try:
            resp = self._session().post(url, json=record.to_payload(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Request error for {url}: {exc}") from exc
        self._check_status(resp, url)

    def _fetch_observations(
        self, base_url: str, zip_code: str, days: int, decode: Callable[[Any], T]
    ) -> List[T]:
        # the zip is a single path segment, never a query or another path
        url = f"{base_url}/observation/{quote(zip_code, safe='')}"
        try:
            resp = self._session().get(url, params={"days": days}, timeout=self.timeout)
        except requests.RequestException as exc:
            # wrap requests exceptions with context for easier debugging
            raise UpstreamUnavailable(f"Request error for {url}: {exc}") from exc

        self._check_status(resp, url)

        # an empty body is "no observations", not an error
        body = (resp.text or "").strip()
        if not body:
            return []
        try:
            data = json.loads(body, parse_float=Decimal, parse_constant=_reject_constant)
        except ValueError as exc:
            raise UpstreamMalformedResponse(f"Invalid JSON from {url}: {exc}") from exc

        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamMalformedResponse(
                f"Unexpected payload from {url}: expected a list, got {type(data).__name__}"
            )

        try:
            return [decode(item) for item in data]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamMalformedResponse(f"Undecodable record from {url}: {exc!r}") from exc

    @staticmethod
    def _check_status(resp: requests.Response, url: str) -> None:
        if resp.status_code < 400:
            return
        snippet = (resp.text or "")[:300]
        message = f"HTTP {resp.status_code} from {url}. Body: {snippet}"
        # throttling and server side trouble mean the source is unavailable
        if resp.status_code == 429 or resp.status_code >= 500:
            raise UpstreamUnavailable(message)
        raise UpstreamMalformedResponse(message)
