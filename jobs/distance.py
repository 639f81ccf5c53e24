"""
Distance job — the processor the service runs for every submitted job.

Example payload:
    {"date": "2024-01-15", "device_id": "phone"}   (device_id optional)

Example result:
    {
        "csv_path": "/data/csv/distance_20240115_phone.csv",
        "total_distance_km": 123.45,
        "max_distance_km": 12.3,
        "min_distance_km": 0.01,
        "total_locations": 42
    }

Steps: fetch the day's locations → compute distance-from-home metrics →
write the CSV report. Each step's failure becomes the job's error_message.
"""

import logging
import threading
from typing import Optional

from calculator.distance import Coordinate, calculate_metrics
from jobs.base import AbstractJobProcessor
from jobs.csv_export import write_distance_csv
from jobs.locations import LocationRepository
from models.job import Job

logger = logging.getLogger(__name__)


class JobCancelledError(RuntimeError):
    pass


class DistanceJob(AbstractJobProcessor):

    def __init__(
        self,
        repository: LocationRepository,
        home_latitude: float,
        home_longitude: float,
        csv_output_path: str,
    ):
        self._repository = repository
        self._home = Coordinate(home_latitude, home_longitude)
        self._csv_output_path = csv_output_path

    def run(self, cancel: threading.Event, job: Job) -> dict:
        day: Optional[str] = job.payload.get("date")
        device_id: Optional[str] = job.payload.get("device_id") or None
        if not day:
            raise ValueError("Missing 'date' in payload")

        logger.info(f"Processing distance job {job.id} (date={day}, device_id={device_id})")
        self._check_cancelled(cancel, job)

        # ── Step 1: Fetch locations ─────────────────────────────
        try:
            locations = self._repository.get_locations_by_date(day, device_id)
        except ValueError:
            raise
        except Exception as e:
            raise RuntimeError(f"database query failed: {e}") from e

        if not locations:
            logger.warning(f"No locations found for date {day}")
            raise LookupError(f"no locations found for date {day}")

        self._check_cancelled(cancel, job)

        # ── Step 2: Compute metrics ─────────────────────────────
        metrics = calculate_metrics(self._home.latitude, self._home.longitude, locations)
        logger.info(
            f"Job {job.id}: {metrics.total_locations} locations, "
            f"total={metrics.total_distance_km:.2f}km "
            f"max={metrics.max_distance_km:.2f}km min={metrics.min_distance_km:.2f}km"
        )

        # ── Step 3: Write CSV ───────────────────────────────────
        try:
            csv_path = write_distance_csv(
                self._csv_output_path, day, device_id, locations, metrics, self._home
            )
        except OSError as e:
            raise RuntimeError(f"CSV generation failed: {e}") from e

        return {
            "csv_path": csv_path,
            "total_distance_km": metrics.total_distance_km,
            "max_distance_km": metrics.max_distance_km,
            "min_distance_km": metrics.min_distance_km,
            "total_locations": metrics.total_locations,
        }

    @staticmethod
    def _check_cancelled(cancel: threading.Event, job: Job) -> None:
        if cancel.is_set():
            raise JobCancelledError(f"job {job.id} cancelled: service is shutting down")
