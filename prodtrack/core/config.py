from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
import os

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "ProdTrack"
    APP_PORT: int = 9210
    DEBUG: bool = False
    SECRET_KEY: str = "prodtrack-secret-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "prodtrack"
    POSTGRES_PORT: int = 5432
    SQLITE_PATH: Optional[str] = None  # set to run on a local SQLite file

    # Logging
    LOG_LEVEL: str = "INFO"
    LOGS_PATH: str = "/tmp/prodtrack_logs"

    # Business rules
    BARCODE_SCAN_WILDCARD: str = "*"  # Code 39 scanners may emit * for -
    MIN_TERMIN_YEAR: int = 2020
    MAX_TERMIN_YEAR: int = 2100

    @property
    def DATABASE_URL(self) -> str:
        if self.SQLITE_PATH:
            return f"sqlite:///{self.SQLITE_PATH}"
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    class Config:
        env_file = os.getenv("PRODTRACK_ENV_FILE", ".env")
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
