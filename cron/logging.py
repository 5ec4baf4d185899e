"""Cron logging: stdout plus one file per job under LOG_DIR."""

import logging
from pathlib import Path

from cron.config import config


def get_logger(job_name: str, log_dir: str | None = None) -> logging.Logger:
    """Logger cron.<job_name> writing to stdout and <log_dir>/cron_<job_name>.log. Idempotent."""
    logger = logging.getLogger(f"cron.{job_name}")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    stream = logging.StreamHandler()
    stream.setFormatter(fmt)
    logger.addHandler(stream)

    directory = Path(log_dir or config.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(directory / f"cron_{job_name}.log", encoding="utf-8")
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    return logger
