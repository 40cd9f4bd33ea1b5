# settings come from the environment, with a local .env for development
# in production, environment variables are injected by docker, kubernetes, cloud provider

from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    precipitation_url: str = "http://localhost:5000"
    temperature_url: str = "http://localhost:5001"
    database_url: str = "sqlite:///weather_report.db"
    upstream_timeout: float = 10.0
    upstream_max_retries: int = 0
    report_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            precipitation_url=os.getenv("PRECIPITATION_SERVICE_URL", defaults.precipitation_url),
            temperature_url=os.getenv("TEMPERATURE_SERVICE_URL", defaults.temperature_url),
            database_url=os.getenv("REPORT_DATABASE_URL", defaults.database_url),
            upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", defaults.upstream_timeout)),
            upstream_max_retries=int(os.getenv("UPSTREAM_MAX_RETRIES", defaults.upstream_max_retries)),
            report_timeout=float(os.getenv("REPORT_TIMEOUT", defaults.report_timeout)),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
