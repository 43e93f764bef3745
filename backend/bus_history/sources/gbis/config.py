import os
from dataclasses import dataclass


@dataclass(frozen=True)
class GbisConfig:
    base_url: str
    service_key: str

    connect_timeout: float
    read_timeout: float
    write_timeout: float
    pool_timeout: float

    retries: int
    backoff_base: float


def load_config() -> GbisConfig:
    service_key = os.getenv("GBIS_SERVICE_KEY")
    if not service_key:
        raise RuntimeError("GBIS_SERVICE_KEY not set in backend/.env")

    return GbisConfig(
        base_url=os.getenv("GBIS_BASE_URL", "https://apis.data.go.kr/6410000"),
        service_key=service_key,
        connect_timeout=float(os.getenv("GBIS_CONNECT_TIMEOUT_SECONDS", "10")),
        read_timeout=float(os.getenv("GBIS_READ_TIMEOUT_SECONDS", "30")),
        write_timeout=float(os.getenv("GBIS_WRITE_TIMEOUT_SECONDS", "10")),
        pool_timeout=float(os.getenv("GBIS_POOL_TIMEOUT_SECONDS", "10")),
        retries=max(1, int(os.getenv("GBIS_RETRIES", "3"))),
        backoff_base=float(os.getenv("GBIS_BACKOFF_BASE_SECONDS", "1.0")),
    )
