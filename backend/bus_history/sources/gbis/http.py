import logging
import random
import time

import httpx

from bus_history.core.log import mask_service_key

from .config import GbisConfig

logger = logging.getLogger(__name__)

RETRY_STATUSES = {429, 502, 503, 504}

RESULT_OK = 0
RESULT_NO_DATA = 4


class GbisApiError(RuntimeError):
    """Upstream answered, but with a non-success result code."""

    def __init__(self, path: str, code: int, message: str):
        super().__init__(f"GBIS {path} failed (code {code}): {message}")
        self.path = path
        self.code = code
        self.message = message


def log_request(request: httpx.Request) -> None:
    key = request.url.params.get("serviceKey")
    url = request.url.copy_set_param("serviceKey", mask_service_key(key)) if key else request.url
    logger.debug("HTTP %s %s", request.method, url)


def make_client(cfg: GbisConfig) -> httpx.Client:
    timeout = httpx.Timeout(
        connect=cfg.connect_timeout,
        read=cfg.read_timeout,
        write=cfg.write_timeout,
        pool=cfg.pool_timeout,
    )
    return httpx.Client(
        base_url=cfg.base_url,
        timeout=timeout,
        headers={"Accept": "application/json", "User-Agent": "bus-history-collector"},
        event_hooks={"request": [log_request]},
    )


def sleep_backoff(cfg: GbisConfig, *, attempt: int, path: str) -> None:
    sleep_s = cfg.backoff_base * (2 ** (attempt - 1))
    sleep_s += random.uniform(0, 0.25)
    logger.info("Sleeping %.2fs before retrying %s", sleep_s, path)
    time.sleep(sleep_s)


def unwrap_body(path: str, payload: dict) -> dict:
    """
    GBIS wraps everything in {"response": {"msgHeader": ..., "msgBody": ...}}.
    Returns msgBody; "no data" comes back as an empty body.
    """
    response = (payload or {}).get("response") or {}
    header = response.get("msgHeader") or {}

    code = int(header.get("resultCode", RESULT_OK))
    if code == RESULT_NO_DATA:
        return {}
    if code != RESULT_OK:
        raise GbisApiError(path, code, str(header.get("resultMessage") or ""))

    return response.get("msgBody") or {}


def get_with_retry(cfg: GbisConfig, client: httpx.Client, path: str, params: dict) -> dict:
    query = {**params, "serviceKey": cfg.service_key, "format": "json"}
    last_err: Exception | None = None

    for attempt in range(1, cfg.retries + 1):
        t0 = time.perf_counter()
        try:
            r = client.get(path, params=query)
            elapsed = time.perf_counter() - t0

            if r.status_code in RETRY_STATUSES:
                logger.warning(
                    "Retryable HTTP %d (attempt %d/%d) GET %s after %.2fs body_snippet=%r",
                    r.status_code,
                    attempt,
                    cfg.retries,
                    path,
                    elapsed,
                    (r.text or "")[:300],
                )
                raise httpx.HTTPStatusError("Retryable status", request=r.request, response=r)

            logger.debug("GET %s completed in %.2fs status=%d", path, elapsed, r.status_code)

            r.raise_for_status()
            return unwrap_body(path, r.json())

        except httpx.TransportError as e:
            last_err = e
            logger.warning(
                "%s (attempt %d/%d) GET %s after %.2fs",
                e.__class__.__name__,
                attempt,
                cfg.retries,
                path,
                time.perf_counter() - t0,
            )

        except httpx.HTTPStatusError as e:
            last_err = e
            status = e.response.status_code if e.response is not None else None
            if status not in RETRY_STATUSES:
                logger.error(
                    "Non-retryable HTTP %s GET %s body_snippet=%r",
                    status,
                    path,
                    (e.response.text or "")[:300] if e.response is not None else None,
                )
                raise

        if attempt < cfg.retries:
            sleep_backoff(cfg, attempt=attempt, path=path)

    raise last_err  # type: ignore
