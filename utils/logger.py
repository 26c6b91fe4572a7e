import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logger(log_file: str = "logs/study_timer.log", level: str = "INFO",
                 max_bytes: int = 10_000_000, backup_count: int = 5):
    Path(log_file).parent.mkdir(exist_ok=True, parents=True)
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level, logging.INFO))
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)
    return logger
