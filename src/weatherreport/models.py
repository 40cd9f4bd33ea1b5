# models and small decimal helpers to keep data shapes explicit and reusable across the app

from __future__ import annotations
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Any, Dict, List, Optional

# one decimal place, banker's rounding (same as the decimal module default)
ONE_PLACE = Decimal("0.1")
ROUNDING = ROUND_HALF_EVEN
# no inch or fahrenheit observation comes near this; larger values are bad data
MAX_MAGNITUDE = Decimal("10000")

_FRACTION = re.compile(r"\.(\d+)")


class WeatherType:
    RAIN = "rain"
    SNOW = "snow"


@dataclass(frozen=True)
class PrecipitationRecord:
    # immutable value object for one precipitation observation
    created_on: datetime
    amount_inches: Decimal
    weather_type: str
    zip_code: str

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "PrecipitationRecord":
        fields = _fold_keys(item)
        return cls(
            created_on=parse_timestamp(fields["createdon"]),
            amount_inches=to_decimal(fields["amountinches"]),
            weather_type=str(fields["weathertype"]),
            zip_code=str(fields["zipcode"]),
        )


@dataclass(frozen=True)
class TemperatureRecord:
    created_on: datetime
    temp_high_f: Decimal
    temp_low_f: Decimal
    zip_code: str

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "TemperatureRecord":
        fields = _fold_keys(item)
        return cls(
            created_on=parse_timestamp(fields["createdon"]),
            temp_high_f=to_decimal(fields["temphighf"]),
            temp_low_f=to_decimal(fields["templowf"]),
            zip_code=str(fields["zipcode"]),
        )

    def to_payload(self) -> Dict[str, Any]:
        # lower camel case, the naming the upstream services expect
        return {
            "createdOn": self.created_on.isoformat(),
            "tempHighF": str(self.temp_high_f),
            "tempLowF": str(self.temp_low_f),
            "zipCode": self.zip_code,
        }


@dataclass(frozen=True)
class WeatherReport:
    # output value object; id is assigned by the report store
    zip_code: str
    created_on: datetime
    rainfall_total_inches: Decimal
    snow_total_inches: Decimal
    average_high_f: Decimal
    average_low_f: Decimal
    id: Optional[int] = None

    def with_id(self, report_id: int) -> "WeatherReport":
        return replace(self, id=report_id)


def round_one(value: Decimal) -> Decimal:
    """Round to one decimal place with ROUND_HALF_EVEN.

    Idempotent: an already rounded value comes back unchanged.
    """
    return Decimal(value).quantize(ONE_PLACE, rounding=ROUNDING)


def mean(values: List[Decimal]) -> Decimal:
    # callers must guard against empty input, there is no NaN fallback
    if not values:
        raise ValueError("mean() of an empty sequence")
    return sum(values, Decimal(0)) / len(values)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"not a number: {value!r}")
    try:
        # str() keeps floats like 0.1 from dragging binary noise along
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc
    # reports never carry NaN or Infinity
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    if abs(number) > MAX_MAGNITUDE:
        raise ValueError(f"out of range: {value!r}")
    return number


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts a trailing ``Z`` and up to 7 fractional digits; naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        # datetime only carries microseconds
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _fold_keys(item: Dict[str, Any]) -> Dict[str, Any]:
    # upstream field names are matched case-insensitively
    if not isinstance(item, dict):
        raise TypeError(f"expected an object, got {type(item).__name__}")
    return {str(k).lower(): v for k, v in item.items()}
