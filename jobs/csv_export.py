"""
CSV report writer for distance jobs.

Output layout:

    timestamp,device_id,latitude,longitude,distance_from_home_km,accuracy,battery,velocity
    2024-01-15T08:00:00Z,phone,40.736097,-74.039373,0.00,10,95,0
    ...
    <blank line>
    Summary
    Total Distance (km),12.34
    Max Distance (km),5.67
    Min Distance (km),0.00
    Total Locations,42
    Average Distance (km),0.29

File name: distance_YYYYMMDD.csv, or distance_YYYYMMDD_<device>.csv when
the job was filtered to one device. Re-running a job for the same
date/device overwrites the previous report.
"""

import csv
import logging
import os
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from calculator.distance import Coordinate, DistanceMetrics, distance_from_home
from jobs.locations import LocationRecord

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "timestamp", "device_id", "latitude", "longitude",
    "distance_from_home_km", "accuracy", "battery", "velocity",
]

# Only files this writer could have produced may be served back for download
CSV_FILENAME_PATTERN = re.compile(r"^distance_[A-Za-z0-9_.\-]+\.csv$")


def csv_filename(day: str, device_id: Optional[str] = None) -> str:
    """2024-01-15 + "phone" → distance_20240115_phone.csv"""
    date_str = day.replace("-", "") if len(day) == 10 else day
    if device_id:
        return f"distance_{date_str}_{_safe_component(device_id)}.csv"
    return f"distance_{date_str}.csv"


def is_report_filename(filename: str) -> bool:
    return bool(CSV_FILENAME_PATTERN.match(filename)) and ".." not in filename


def _safe_component(value: str) -> str:
    # Device ids come from the request body and end up in a path
    return re.sub(r"[^A-Za-z0-9_.\-]", "_", value)


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def write_distance_csv(
    output_dir: str,
    day: str,
    device_id: Optional[str],
    locations: Iterable[LocationRecord],
    metrics: DistanceMetrics,
    home: Coordinate,
) -> str:
    """Write the report and return its path. OSErrors propagate to the caller."""
    os.makedirs(output_dir, exist_ok=True)
    csv_path = os.path.join(output_dir, csv_filename(day, device_id))

    with open(csv_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)

        for loc in locations:
            distance = distance_from_home(home.latitude, home.longitude, loc.latitude, loc.longitude)
            writer.writerow([
                _rfc3339(loc.created_at),
                loc.device_id,
                f"{loc.latitude:.6f}",
                f"{loc.longitude:.6f}",
                f"{distance:.2f}",
                loc.accuracy,
                loc.battery,
                loc.velocity,
            ])

        # ── Summary footer ──────────────────────────────────────
        writer.writerow([])
        writer.writerow(["Summary"])
        writer.writerow(["Total Distance (km)", f"{metrics.total_distance_km:.2f}"])
        writer.writerow(["Max Distance (km)", f"{metrics.max_distance_km:.2f}"])
        writer.writerow(["Min Distance (km)", f"{metrics.min_distance_km:.2f}"])
        writer.writerow(["Total Locations", metrics.total_locations])
        writer.writerow(["Average Distance (km)", f"{metrics.avg_distance_km:.2f}"])

    logger.info(f"CSV file generated: {csv_path}")
    return csv_path
