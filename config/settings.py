"""
Centralized configuration using pydantic-settings.

How it works:
- Reads environment variables automatically (e.g., HOME_LATITUDE env var → Settings.HOME_LATITUDE)
- Falls back to defaults defined here if env vars are not set
- Can also read from a .env file in the project root

Every module imports `settings` from here instead of hardcoding values.
Bad values (e.g. HOME_LATITUDE=abc) fail loudly at import time with a
pydantic ValidationError instead of surfacing later inside a worker thread.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Service ─────────────────────────────────────────────────
    SERVICE_NAME: str = "distance-worker"
    SERVICE_NAMESPACE: str = "owntracks"
    SERVICE_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # ── PostgreSQL (OwnTracks location database) ────────────────
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "development"
    POSTGRES_PASSWORD: str = "development"
    POSTGRES_DB: str = "owntracks"

    # ── Home location ───────────────────────────────────────────
    HOME_LATITUDE: float = Field(default=40.736097, ge=-90.0, le=90.0)
    HOME_LONGITUDE: float = Field(default=-74.039373, ge=-180.0, le=180.0)
    AWAY_THRESHOLD_KM: float = Field(default=0.5, ge=0.0)

    # ── CSV output ──────────────────────────────────────────────
    CSV_OUTPUT_PATH: str = "/data/csv"

    # ── Job queue ───────────────────────────────────────────────
    WORKER_POOL_SIZE: int = Field(default=5, ge=1)     # number of worker threads
    QUEUE_CAPACITY: int = Field(default=100, ge=1)     # pending jobs before submissions are rejected
    WORKER_POLL_INTERVAL: float = Field(default=0.5, gt=0)  # seconds a worker waits before re-checking for shutdown
    SHUTDOWN_TIMEOUT: float = Field(default=10.0, gt=0)

    # ── Job listing ─────────────────────────────────────────────
    LIST_DEFAULT_LIMIT: int = 50
    LIST_MAX_LIMIT: int = 500

    # ── Tracing (OpenTelemetry) ────────────────────────────────
    OTEL_ENABLED: bool = False
    OTEL_ENDPOINT: str = "localhost:4317"   # OTLP/gRPC collector

    # ── App ─────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        """Async connection string for FastAPI (uses asyncpg driver)."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def sync_database_url(self) -> str:
        """Sync connection string for worker threads (uses psycopg2 driver)."""
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton, import this everywhere
settings = Settings()
