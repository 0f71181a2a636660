"""
Logging for the growth analysis pipeline.

A run logs human-readable lines to the console and JSON Lines to two
files under its output directory:

    <output_dir>/pipeline.jsonl       this run only
    <output_dir>/logs/pipeline.log    rotating, kept across runs

Every JSON record carries the run id that is also stored in
pipeline_run.json, so a result bundle can be traced to its log lines.
Step results, the cleaning drop report and NaN summaries are attached
as a ``pipeline_record`` payload and merged into the JSON entry.

Usage:
    from growth_analysis.logging_config import get_pipeline_logger
    log = get_pipeline_logger(__name__)
"""

import json
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

RUN_LOG_FILENAME = "pipeline.jsonl"
ROTATING_LOG_FILENAME = "pipeline.log"

# Handlers and filter attached by setup_logging(); removed by reset_logging().
_installed = []


def new_run_id():
    return uuid.uuid4().hex[:8]


class RunIdFilter(logging.Filter):
    """Stamp every record with the run id of the current pipeline run."""

    def __init__(self, run_id):
        super().__init__()
        self.run_id = run_id

    def filter(self, record):
        record.run_id = self.run_id
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``pipeline_record`` fields are merged in."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S.") +
                         f"{int(record.msecs):03d}",
            "level": record.levelname,
            "logger": record.name,
            "run_id": getattr(record, "run_id", None),
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "pipeline_record", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(output_dir, run_id=None, console_level=None):
    """Attach the console and JSON Lines handlers for one pipeline run.

    Replaces whatever an earlier call attached, so repeated runs in one
    process never log twice.

    Parameters
    ----------
    output_dir : str
        Run output directory; ``pipeline.jsonl`` goes here and the
        rotating ``pipeline.log`` under ``logs/``.
    run_id : str, optional
        Default: a fresh id from new_run_id().
    console_level : int, optional
        Default: from the LOG_LEVEL environment variable, else INFO.

    Returns
    -------
    str
        The run id stamped on every record.
    """
    reset_logging()
    run_id = run_id or new_run_id()

    if console_level is None:
        env_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        console_level = getattr(logging, env_level, logging.INFO)

    log_dir = os.path.join(output_dir, "logs")
    os.makedirs(log_dir, exist_ok=True)

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    rotating = RotatingFileHandler(
        os.path.join(log_dir, ROTATING_LOG_FILENAME),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=3,
    )
    run_log = logging.FileHandler(os.path.join(output_dir, RUN_LOG_FILENAME))

    run_filter = RunIdFilter(run_id)
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in (rotating, run_log):
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(JsonFormatter())
    for handler in (console, rotating, run_log):
        handler.addFilter(run_filter)
        root.addHandler(handler)
        _installed.append(handler)

    return run_id


def reset_logging():
    """Detach and close the handlers added by setup_logging()."""
    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()


def get_pipeline_logger(name):
    """Module logger; writes nothing until setup_logging() has run."""
    return logging.getLogger(name)


def log_step_result(logger, step_result):
    """Log a StepResult at INFO (ERROR on failure) with its fields attached."""
    record = step_result.to_dict()
    record.pop("error", None)

    parts = [f"[{step_result.step_name}] {step_result.status}",
             f"({step_result.timing_seconds:.1f}s)"]
    if step_result.output_summary:
        parts.append(f"output={step_result.output_summary}")
    if step_result.warnings:
        parts.append(f"warnings={len(step_result.warnings)}")

    level = logging.INFO if step_result.ok else logging.ERROR
    logger.log(level, " ".join(parts), extra={"pipeline_record": record})


def log_drop_report(logger, report):
    """Log the per-stage row counts of a cleaning pass."""
    logger.info(
        "Cleaning: %d rows in, %d unclassified, %d incomplete, %d rows out",
        report.rows_in, report.unclassified, report.incomplete, report.rows_out,
        extra={"pipeline_record": {"drop_report": report.to_dict()}},
    )


class StepTimer:
    """Context manager recording wall-clock bounds and elapsed time.

    Usage:
        with StepTimer() as t:
            do_work()
        t.started_at, t.completed_at, t.elapsed
    """

    def __enter__(self):
        self.started_at = datetime.now(timezone.utc).isoformat()
        self.completed_at = None
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self.start
        self.completed_at = datetime.now(timezone.utc).isoformat()
