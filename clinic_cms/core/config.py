from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Clinic CMS"
    API_V1_STR: str = "/api/v1"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "clinic_cms"
    DATABASE_URL: Optional[str] = None

    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8
    CMS_ALLOWED_ROLES: List[str] = ["admin", "content_manager"]

    LOG_LEVEL: str = "INFO"
    SQL_LOG_LEVEL: str = "WARNING"

    SCHEDULE_NOTES_MAX_LENGTH: int = 200
    # Per-doctor lock around conflict check + write inside one worker.
    SCHEDULE_SERIALIZE_WRITES: bool = True

    class Config:
        case_sensitive = True
        env_file = ".env"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.DATABASE_URL:
            self.DATABASE_URL = f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

settings = Settings()
