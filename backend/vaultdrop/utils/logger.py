# vaultdrop/utils/logger.py

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logger(level: str | None = None, error_log: str | None = None):
    """
    Configure the root logger once: stdout for everything, plus an
    optional append-only file that only receives warnings and errors.
    Calling it again only adjusts the level.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()

    if getattr(setup_logger, "_configured", False):
        root.setLevel(log_level)
        return

    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    handlers = [stream]

    if error_log:
        file_handler = logging.FileHandler(error_log, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root.handlers[:] = handlers
    root.setLevel(log_level)
    setup_logger._configured = True
