import argparse

import pytest

from bus_history.collector.config import DEFAULT_INTERVAL_MS, CollectorConfig, load_config
from bus_history.core.log import mask_service_key
from bus_history.jobs.collect.run_collector import parse_hour


def test_defaults(monkeypatch):
    for name in ("COLLECTOR_INTERVAL_MS", "COLLECTOR_START_HOUR", "COLLECTOR_END_HOUR", "COLLECTOR_TIMEZONE"):
        monkeypatch.delenv(name, raising=False)

    cfg = load_config()

    assert cfg.interval_ms == 30000
    assert (cfg.start_hour, cfg.end_hour) == (0, 0)
    assert cfg.timezone == "Asia/Seoul"
    assert cfg.confirm_timeout_seconds == 120.0
    assert cfg.retention_seconds == 600.0
    assert cfg.max_age_seconds == 3600.0


@pytest.mark.parametrize("raw", ["0", "-5"])
def test_non_positive_interval_falls_back_to_default(monkeypatch, raw):
    monkeypatch.setenv("COLLECTOR_INTERVAL_MS", raw)

    assert load_config().interval_ms == DEFAULT_INTERVAL_MS


def test_env_window(monkeypatch):
    monkeypatch.setenv("COLLECTOR_START_HOUR", "22")
    monkeypatch.setenv("COLLECTOR_END_HOUR", "2")

    cfg = load_config()

    assert (cfg.start_hour, cfg.end_hour) == (22, 2)


def test_hours_out_of_range_rejected():
    with pytest.raises(ValueError):
        CollectorConfig(start_hour=24)
    with pytest.raises(ValueError):
        CollectorConfig(end_hour=-1)


def test_cli_hour_argument():
    assert parse_hour("23") == 23
    with pytest.raises(argparse.ArgumentTypeError):
        parse_hour("24")


def test_mask_service_key():
    assert mask_service_key("abcdefgh1234") == "****1234"
    assert "abc" not in mask_service_key("abc")


def test_unknown_timezone_rejected(monkeypatch):
    with pytest.raises(ValueError):
        CollectorConfig(timezone="Asia/Nowhere")

    monkeypatch.setenv("COLLECTOR_TIMEZONE", "Asia/Nowhere")
    with pytest.raises(ValueError):
        load_config()
