import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_INTERVAL_MS = 30000


@dataclass(frozen=True)
class CollectorConfig:
    interval_ms: int = DEFAULT_INTERVAL_MS

    # active hour window, local wall clock; 0/0 means around the clock
    start_hour: int = 0
    end_hour: int = 0
    timezone: str = "Asia/Seoul"

    reconcile_seconds: float = 30.0

    confirm_timeout_seconds: float = 120.0
    retention_seconds: float = 600.0
    max_age_seconds: float = 3600.0

    def __post_init__(self):
        for name in ("start_hour", "end_hour"):
            hour = getattr(self, name)
            if not 0 <= hour <= 23:
                raise ValueError(f"{name} must be within 0-23, got {hour}")

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {self.timezone!r}")


def load_config() -> CollectorConfig:
    interval_ms = int(os.getenv("COLLECTOR_INTERVAL_MS", str(DEFAULT_INTERVAL_MS)))
    if interval_ms <= 0:
        interval_ms = DEFAULT_INTERVAL_MS

    return CollectorConfig(
        interval_ms=interval_ms,
        start_hour=int(os.getenv("COLLECTOR_START_HOUR", "0")),
        end_hour=int(os.getenv("COLLECTOR_END_HOUR", "0")),
        timezone=os.getenv("COLLECTOR_TIMEZONE", "Asia/Seoul"),
        reconcile_seconds=float(os.getenv("COLLECTOR_RECONCILE_SECONDS", "30")),
        confirm_timeout_seconds=float(os.getenv("COLLECTOR_CONFIRM_TIMEOUT_SECONDS", "120")),
        retention_seconds=float(os.getenv("COLLECTOR_RETENTION_SECONDS", "600")),
        max_age_seconds=float(os.getenv("COLLECTOR_MAX_AGE_SECONDS", "3600")),
    )
