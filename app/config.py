from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7

    # Application
    APP_NAME: str = "Study Deposit"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "http://localhost:3000"
    API_PREFIX: str = "/api/deposit"
    LOG_DIR: str = "logs"

    # Server
    # Default to 0.0.0.0 for development, use env var HOST in production
    HOST: str = "0.0.0.0"  # nosec: B104
    PORT: int = 8000

    # Deposit rules
    INITIAL_DEPOSIT: int = 50000
    LACK_PENALTY: int = 5000  # Submitted but not passed
    MISSING_PENALTY: int = 10000  # Not submitted

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )


settings = Settings()  # type: ignore
