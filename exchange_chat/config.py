import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class Settings:

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db: str = "exchange_chat"
    # no default: tokens are only accepted once JWT_SECRET is set
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    message_max_length: int = 4000
    thread_page_size: int = 50
    log_level: str = "INFO"


def load_settings() -> Settings:
    defaults = Settings()
    return Settings(
        mongodb_url=os.getenv("MONGODB_URL", defaults.mongodb_url),
        mongodb_db=os.getenv("MONGODB_DB", defaults.mongodb_db),
        jwt_secret=os.getenv("JWT_SECRET") or None,
        jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
        message_max_length=int(os.getenv("MESSAGE_MAX_LENGTH", defaults.message_max_length)),
        thread_page_size=int(os.getenv("THREAD_PAGE_SIZE", defaults.thread_page_size)),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
