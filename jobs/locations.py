"""
Location repository — read-only queries against the OwnTracks locations table.

Runs inside worker threads, so it uses the SYNC session factory from
models/base.py. Every method opens its own session and closes it before
returning, so repository calls from different workers never share a session.

Rows are converted to LocationRecord (a plain frozen dataclass) before the
session closes:
- the calculator and the CSV writer never touch SQLAlchemy objects
- NULL telemetry columns become 0 / "" here, once

Dates are "YYYY-MM-DD" strings and are interpreted as UTC calendar days.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from models.location import Location

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationRecord:
    id: int
    device_id: str
    tid: str
    latitude: float
    longitude: float
    accuracy: int
    altitude: int
    velocity: int
    battery: int
    battery_status: int
    connection_type: str
    trigger: str
    timestamp: Optional[datetime]
    created_at: datetime

    @classmethod
    def from_row(cls, row: Location) -> "LocationRecord":
        return cls(
            id=row.id,
            device_id=row.device_id or "",
            tid=row.tid or "",
            latitude=row.latitude,
            longitude=row.longitude,
            accuracy=row.accuracy or 0,
            altitude=row.altitude or 0,
            velocity=row.velocity or 0,
            battery=row.battery or 0,
            battery_status=row.battery_status or 0,
            connection_type=row.connection_type or "",
            trigger=row.trigger or "",
            timestamp=row.timestamp,
            created_at=row.created_at,
        )


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string. Raises ValueError on anything else."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValueError(f"invalid date '{value}', expected YYYY-MM-DD") from None


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """[start 00:00 UTC, day after end 00:00 UTC)"""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper


class LocationRepository:

    def __init__(self, db_session_factory):
        self._db_session_factory = db_session_factory

    def get_locations_by_date(
        self, day: str, device_id: Optional[str] = None
    ) -> list[LocationRecord]:
        """All locations recorded on one day, oldest first."""
        return self.get_locations_by_date_range(day, day, device_id)

    def get_locations_by_date_range(
        self, start_day: str, end_day: str, device_id: Optional[str] = None
    ) -> list[LocationRecord]:
        """All locations from start_day through end_day (inclusive), oldest first."""
        start, end = parse_date(start_day), parse_date(end_day)
        if end < start:
            raise ValueError(f"end date {end_day} is before start date {start_day}")
        lower, upper = _day_bounds(start, end)

        session: Session = self._db_session_factory()
        try:
            query = session.query(Location).filter(
                Location.created_at >= lower,
                Location.created_at < upper,
            )
            if device_id:
                query = query.filter(Location.device_id == device_id)

            rows = query.order_by(Location.created_at.asc(), Location.id.asc()).all()
            logger.debug(
                f"Fetched {len(rows)} locations for {start_day}..{end_day} "
                f"(device={device_id or 'all'})"
            )
            return [LocationRecord.from_row(row) for row in rows]
        finally:
            session.close()

    def get_devices(self) -> list[str]:
        """Distinct device ids that have reported at least one location."""
        session: Session = self._db_session_factory()
        try:
            rows = (
                session.query(Location.device_id)
                .filter(Location.device_id.is_not(None))
                .distinct()
                .order_by(Location.device_id)
                .all()
            )
            return [row[0] for row in rows]
        finally:
            session.close()

    def get_location_count(self, day: str, device_id: Optional[str] = None) -> int:
        lower, upper = _day_bounds(parse_date(day), parse_date(day))

        session: Session = self._db_session_factory()
        try:
            query = session.query(func.count(Location.id)).filter(
                Location.created_at >= lower,
                Location.created_at < upper,
            )
            if device_id:
                query = query.filter(Location.device_id == device_id)
            return query.scalar() or 0
        finally:
            session.close()

    def health_check(self) -> None:
        """Raise if the database is unreachable."""
        session: Session = self._db_session_factory()
        try:
            session.execute(text("SELECT 1"))
        finally:
            session.close()
