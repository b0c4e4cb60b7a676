# logging_config.py
import logging

from streamsphere.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Route every logger through one console handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in list(root.handlers):
        root.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(console_handler)

    # psycopg_pool is chatty at INFO about every connection it opens
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
