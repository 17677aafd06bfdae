import logging
import os
import sys


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level_from_env(default: int) -> int:
    raw = os.environ.get("RAILSCAN_LOG_LEVEL", "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def setup_logging(name: str = "railscan", level: int = logging.INFO) -> logging.Logger:
    """Configure the root logger once; RAILSCAN_LOG_LEVEL overrides ``level``."""
    level = _level_from_env(level)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(level)
        ch.setFormatter(formatter)
        root_logger.addHandler(ch)
    else:
        for handler in root_logger.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
