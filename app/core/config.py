from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import Optional

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str
    SQL_ECHO: bool = False
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"

    # Redis settings
    REDIS_URL: str
    SERIES_CACHE_TTL_SECONDS: int = 900

    # Recurring activities
    RECURRENCE_HORIZON_DAYS: int = 365  # used when a rule has no end date
    RECURRENCE_MAX_INSTANCES: int = 100

    PROJECT_NAME: str = "Convive Activities API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Community activities with recurring series"
    LOG_LEVEL: Optional[str] = None

    class Config:
        env_file = ".env"


settings = Settings()
