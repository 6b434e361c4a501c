import logging

from exchange_chat.config import get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logger(level: str | None = None) -> None:
    level = level or get_settings().log_level
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    # driver heartbeats are noisy below WARNING
    logging.getLogger("pymongo").setLevel(logging.WARNING)
