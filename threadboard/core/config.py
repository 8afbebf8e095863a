# threadboard/core/config.py
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "Threadboard API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # MongoDB Settings
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "threadboard"
    MONGODB_POOL_SIZE: int = 10
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    THREADS_COLLECTION: str = "threads"
    USERS_COLLECTION: str = "users"

    # Redis (stale-path signal)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10
    REVALIDATION_CHANNEL: str = "revalidate-path"
    PAGE_CACHE_PREFIX: str = "page:"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Reply nesting resolved by fetch_thread_by_id
    THREAD_TREE_DEPTH: int = 2

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"

settings = Settings()
