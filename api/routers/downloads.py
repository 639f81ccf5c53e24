"""
CSV report download.

GET /download/{filename} → stream a report written by a completed job

Only names the CSV writer could have produced (distance_*.csv, no path
separators) are served, and only from CSV_OUTPUT_PATH.
"""

import os

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from config.settings import settings
from jobs.csv_export import is_report_filename

router = APIRouter(tags=["downloads"])


@router.get("/download/{filename}")
async def download_csv(filename: str) -> FileResponse:
    if not is_report_filename(filename):
        raise HTTPException(status_code=400, detail="Invalid filename format")

    csv_path = os.path.join(settings.CSV_OUTPUT_PATH, filename)
    if not os.path.isfile(csv_path):
        raise HTTPException(status_code=404, detail=f"Report {filename} not found")

    return FileResponse(csv_path, media_type="text/csv", filename=filename)
