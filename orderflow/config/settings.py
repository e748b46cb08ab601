# orderflow/config/settings.py
from pydantic_settings import BaseSettings
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "Order Pipeline Service"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Database Settings
    DATABASE_URL: str = "sqlite:///./orderflow.db"
    DB_ECHO: bool = False

    # Security Settings (tokens are issued by the upstream user directory)
    SECRET_KEY: str = "your-secret-key-here-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS Settings
    ALLOWED_HOSTS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File Upload Settings
    UPLOAD_DIRECTORY: str = "Uploads"
    UPLOAD_URL_PREFIX: str = "/Uploads"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    BULK_ALLOWED_EXTENSIONS: List[str] = [".xlsx", ".xls", ".csv"]

    # Order numbering
    ORDER_ID_PREFIX: str = "PMTO"
    ORDER_COUNTER_NAME: str = "orderId"

    # Notifications / real-time events
    NOTIFICATION_FETCH_LIMIT: int = 50
    EVENT_CHANNEL: str = "global"
    REDIS_URL: Optional[str] = None
    REDIS_CONNECT_TIMEOUT: float = 2.0

    # Email Settings
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: Optional[str] = None
    NOTIFY_CUSTOMER_ON_CREATE: bool = False

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
