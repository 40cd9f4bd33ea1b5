# connects command line input (zip, days) to the report service and prints the result as JSON

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import Settings
from .errors import WeatherReportError
from .service import build_service, error_response, report_to_dict


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and store a weather report for a zip code")
    parser.add_argument("zip", help="zip code to report on")
    # kept as text so the service boundary does the range validation
    parser.add_argument("days", help="number of trailing days (1-30)")
    parser.add_argument("--timeout", type=float, default=None, help="overall deadline in seconds")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    service = build_service(settings)
    if args.timeout is not None:
        service.timeout = args.timeout

    try:
        report = service.get_report(args.zip, args.days)
    except WeatherReportError as exc:
        status, body = error_response(exc)
        print(json.dumps(body), file=sys.stderr)
        return 2 if status < 500 else 1

    print(json.dumps(report_to_dict(report), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
