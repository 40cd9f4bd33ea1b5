# error taxonomy shared by every layer; each error carries a stable kind tag
# so the entry point can answer without leaking internal detail

from __future__ import annotations


class WeatherReportError(RuntimeError):
    kind = "error"


class UpstreamUnavailable(WeatherReportError):
    # network or transport failure reaching a data service
    kind = "upstream_unavailable"


class UpstreamMalformedResponse(WeatherReportError):
    # payload could not be decoded into the expected record shape
    kind = "upstream_malformed_response"


class InsufficientData(WeatherReportError):
    kind = "insufficient_data"


class PersistenceFailed(WeatherReportError):
    kind = "persistence_failed"


class InvalidRequest(WeatherReportError):
    kind = "invalid_request"
