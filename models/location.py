"""
Location ORM model — maps to the OwnTracks "locations" table in PostgreSQL.

This service never writes to the table; the OwnTracks recorder does.
Most telemetry columns are nullable in the recorder's schema, so the
repository turns NULLs into zero / empty values before they reach the
calculator or the CSV writer.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Integer, Float, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Location(Base):
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    device_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    tid: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # ── Position ────────────────────────────────────────────────
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    altitude: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    velocity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ── Device telemetry ────────────────────────────────────────
    battery: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    battery_status: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    connection_type: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    trigger: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # ── Timestamps ──────────────────────────────────────────────
    timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Location {self.id} [{self.device_id}] {self.latitude},{self.longitude}>"
