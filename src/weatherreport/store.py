"""
Report store: durable persistence of finished weather reports.
"""
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, Numeric, String, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import PersistenceFailed
from .models import WeatherReport, parse_timestamp


logger = logging.getLogger(__name__)

Base = declarative_base()


class WeatherReportRow(Base):
    """One row per successful report build."""
    __tablename__ = "weather_report"

    id = Column(Integer, primary_key=True, autoincrement=True)
    zip_code = Column(String(16), nullable=False, index=True)
    created_on = Column(DateTime(timezone=True), nullable=False)
    rainfall_total_inches = Column(Numeric(6, 1), nullable=False)
    snow_total_inches = Column(Numeric(6, 1), nullable=False)
    average_high_f = Column(Numeric(6, 1), nullable=False)
    average_low_f = Column(Numeric(6, 1), nullable=False)

    def to_report(self) -> WeatherReport:
        return WeatherReport(
            id=self.id,
            zip_code=self.zip_code,
            # sqlite hands back naive datetimes
            created_on=parse_timestamp(self.created_on),
            rainfall_total_inches=self.rainfall_total_inches,
            snow_total_inches=self.snow_total_inches,
            average_high_f=self.average_high_f,
            average_low_f=self.average_low_f,
        )


class ReportStore:
    """Writes weather reports to the ``weather_report`` table.

    Every call opens its own session from a pooled engine, so a single store
    can be shared by concurrent report builds.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, **engine_options) -> "ReportStore":
        """
        Build a store from a database URL.

        Args:
            url: SQLAlchemy database URL
            **engine_options: Extra keyword arguments for ``create_engine``

        Returns:
            A ReportStore bound to a pooled engine
        """
        options = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False}
        options.update(engine_options)
        return cls(create_engine(url, **options))

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def save(self, report: WeatherReport) -> WeatherReport:
        """
        Persist a report in a single transaction.

        Args:
            report: Report to store; its ``id`` is ignored

        Returns:
            The same report with the generated ``id`` populated

        Raises:
            PersistenceFailed: If the write fails (nothing is stored)
        """
        row = WeatherReportRow(
            zip_code=report.zip_code,
            created_on=report.created_on,
            rainfall_total_inches=report.rainfall_total_inches,
            snow_total_inches=report.snow_total_inches,
            average_high_f=report.average_high_f,
            average_low_f=report.average_low_f,
        )
        try:
            with self._sessions.begin() as session:
                session.add(row)
                session.flush()
                report_id = row.id
        except SQLAlchemyError as exc:
            logger.error(f"Failed to persist report for zip {report.zip_code}: {exc}")
            raise PersistenceFailed(f"Could not store report for zip {report.zip_code}") from exc

        logger.info(f"Stored weather report {report_id} for zip {report.zip_code}")
        return report.with_id(report_id)

    def get(self, report_id: int) -> Optional[WeatherReport]:
        with self._session() as session:
            row = session.get(WeatherReportRow, report_id)
            return row.to_report() if row else None

    def latest(self, zip_code: str) -> Optional[WeatherReport]:
        """Most recently created report for a zip code, if any."""
        stmt = (
            select(WeatherReportRow)
            .where(WeatherReportRow.zip_code == zip_code)
            .order_by(WeatherReportRow.created_on.desc(), WeatherReportRow.id.desc())
            .limit(1)
        )
        with self._session() as session:
            row = session.scalars(stmt).first()
            return row.to_report() if row else None

    def _session(self) -> Session:
        return self._sessions()
