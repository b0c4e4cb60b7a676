# config.py
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    secret_key: str
    database_url: str
    access_token_expire_minutes: int = 60 * 24 * 7  # tokens live for a week
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    seed_on_startup: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()


SECRET_KEY = settings.secret_key
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes

DATABASE_URL = settings.database_url
DB_POOL_MIN_SIZE = settings.db_pool_min_size
DB_POOL_MAX_SIZE = settings.db_pool_max_size

LOG_LEVEL = settings.log_level
CORS_ORIGINS = settings.cors_origins
SEED_ON_STARTUP = settings.seed_on_startup
