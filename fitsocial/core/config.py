# fitsocial/core/config.py
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "FitSocial API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    # MongoDB Settings
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "fitsocial"
    MONGODB_POOL_SIZE: int = 10
    MONGODB_MAX_IDLE_TIME_MS: int = 60000  # 1 minute
    # Requires a replica set; a standalone mongod rejects transactions
    MONGODB_USE_TRANSACTIONS: bool = False

    # Security and JWT
    JWT_SECRET: str = "my secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "fitsocial:auth"

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Social layer
    FEED_KIND_WINDOW: int = 20
    MAX_FEED_WINDOW: int = 100
    DIRECTORY_LIMIT: int = 100
    PLACEHOLDER_NAME: str = "User"

    class Config:
        env_file = ".env"

settings = Settings()
