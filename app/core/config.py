from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "PopularDoctor"
    API_V1_STR: str = "/api/v1"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "populardoctor"
    DATABASE_URL: Optional[str] = None
    REDIS_URL: str = "redis://localhost:6379/0"

    # All wall-clock arithmetic happens in this zone, whatever the server's local time is
    TIMEZONE: str = "Asia/Calcutta"
    BOOKING_WINDOW_HOURS: int = 4

    # Token release
    BLOCK_GRACE_SECONDS: int = 60
    RELEASE_POLL_SECONDS: float = 5.0
    RELEASE_WORKER_ENABLED: bool = True

    # Sequence generator
    SEQUENCE_SEED: int = 1
    SEQUENCE_LOCK_TIMEOUT: float = 10.0
    SEQUENCE_LOCK_BLOCKING_TIMEOUT: float = 10.0

    OTP_DIGITS: int = 4
    SCORING_CONFIG_FILE: Optional[str] = None

    class Config:
        case_sensitive = True
        env_file = ".env"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.DATABASE_URL:
            self.DATABASE_URL = f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

settings = Settings()
