import argparse
import dataclasses
import logging
import signal
import threading
import uuid
from datetime import datetime, UTC

from sqlalchemy.orm import Session

from bus_history.collector.config import load_config
from bus_history.collector.persistence import DbArrivalSink, DbConfigProvider
from bus_history.collector.supervisor import CollectorSupervisor
from bus_history.core.db import SessionLocal, init_db
from bus_history.core.log import configure_logging_if_needed
from bus_history.models.job_runs import JobRun
from bus_history.sources.gbis.source import GbisSource

logger = logging.getLogger(__name__)


def parse_hour(value: str) -> int:
    hour = int(value)
    if not 0 <= hour <= 23:
        raise argparse.ArgumentTypeError(f"Hour must be 0-23. Got: {value}")
    return hour


def main():
    p = argparse.ArgumentParser(description="Collect bus arrivals for every active route config until interrupted")
    p.add_argument("--interval-ms", type=int, help="Poll interval per station (default COLLECTOR_INTERVAL_MS)")
    p.add_argument("--start-hour", type=parse_hour, help="Start of the active window, 0-23")
    p.add_argument("--end-hour", type=parse_hour, help="End of the active window, 0-23 (0/0 = 24h)")
    args = p.parse_args()

    configure_logging_if_needed()
    init_db()

    cfg = load_config()
    overrides = {
        k: v
        for k, v in {"interval_ms": args.interval_ms, "start_hour": args.start_hour, "end_hour": args.end_hour}.items()
        if v is not None
    }
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    db: Session = SessionLocal()
    run_id = uuid.uuid4()

    job = JobRun(
        run_id=run_id,
        job_name="collect_bus_arrivals",
        status="running",
        meta={"args": vars(args), "config": dataclasses.asdict(cfg)},
    )
    db.add(job)
    db.commit()

    stop_requested = threading.Event()

    def _request_stop(signum, _frame):
        logger.info("Received signal %d, shutting down", signum)
        stop_requested.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    try:
        with GbisSource() as source:
            supervisor = CollectorSupervisor(
                DbConfigProvider(SessionLocal),
                source,
                source,
                DbArrivalSink(SessionLocal),
                cfg,
            )
            supervisor.start()
            try:
                while not stop_requested.wait(1.0):
                    pass
            finally:
                workers = supervisor.running_config_ids()
                supervisor.stop()

        job = db.get(JobRun, run_id)
        job.status = "success"
        job.ended_at = datetime.now(UTC)
        job.meta = {**(job.meta or {}), "configs_at_shutdown": workers}
        db.commit()

    except Exception as e:
        db.rollback()
        job = db.get(JobRun, run_id)
        job.status = "fail"
        job.ended_at = datetime.now(UTC)
        job.meta = {**(job.meta or {}), "error": repr(e)}
        db.commit()
        raise

    finally:
        db.close()


if __name__ == "__main__":
    main()
