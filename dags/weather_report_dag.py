# dags/weather_report_dag.py
from __future__ import annotations
import os
from datetime import datetime, timedelta
from typing import List
from airflow.decorators import dag, task
from airflow.exceptions import AirflowFailException
from weatherreport.errors import UpstreamUnavailable, WeatherReportError
from weatherreport.service import build_service, report_to_dict

ZIP_CODES: List[str] = [
    z.strip() for z in os.getenv("REPORT_ZIP_CODES", "84101,90001,83702").split(",") if z.strip()
]
WINDOW_DAYS = 7

@dag(
    dag_id="weather_report",
    start_date=datetime(2025, 1, 1),
    schedule="0 6 * * *",
    catchup=False,
    default_args={"owner": "weather-eng", "retries": 1, "retry_delay": timedelta(minutes=2)},
    tags=["weather", "report"],
)
def weather_report():
    @task(pool="weather_services", execution_timeout=timedelta(seconds=60))
    def build(zip_code: str, days: int = WINDOW_DAYS) -> dict:
        # retries live here at the task level, the service itself never retries
        service = build_service()
        try:
            report = service.get_report(zip_code, days)
        except UpstreamUnavailable:
            raise
        except WeatherReportError as e:
            # nothing a retry would fix
            raise AirflowFailException(f"build({zip_code}) failed with {e.kind}: {e}")
        return report_to_dict(report)

    reports = build.expand(zip_code=ZIP_CODES)

    @task
    def publish(rows: List[dict]) -> None:
        for r in sorted(rows, key=lambda x: x["zipCode"]):
            print(
                f"{r['zipCode']} rain:{r['rainfallTotalInches']} snow:{r['snowTotalInches']} "
                f"hi:{r['averageHighF']} lo:{r['averageLowF']} (report {r['id']})"
            )

    publish(reports)

dag = weather_report()
