"""Configuration settings for the face index sync service."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        INDEX_DB_*: Connection settings for the local face index database
        DIRECTORY_DB_*: Connection settings for the read-only employee directory
        REKOGNITION_COLLECTION_ID: Remote collection holding the registered faces
        SOURCE_IMAGE_BASE_URL: Prefix prepended to relative photo paths from the directory
        SYNC_INTERVAL_SECONDS: Delay between two background reconciliation runs
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "Face Index Sync Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Face index database (read/write)
    INDEX_DB_DRIVER: str = "mysql+aiomysql"
    INDEX_DB_HOST: str = "127.0.0.1"
    INDEX_DB_PORT: int = 3306
    INDEX_DB_USER: str = "root"
    INDEX_DB_PASSWORD: str = ""
    INDEX_DB_NAME: str = "biometrics"

    # Employee directory database (read-only)
    DIRECTORY_DB_DRIVER: str = "mysql+aiomysql"
    DIRECTORY_DB_HOST: str = "127.0.0.1"
    DIRECTORY_DB_PORT: int = 3306
    DIRECTORY_DB_USER: str = "root"
    DIRECTORY_DB_PASSWORD: str = ""
    DIRECTORY_DB_NAME: str = "production"

    # Pool Settings (shared by both engines)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: int = 30
    DB_ECHO: bool = False

    @property
    def index_database_url(self) -> URL:
        """SQLAlchemy URL of the face index database."""
        return URL.create(
            self.INDEX_DB_DRIVER,
            username=self.INDEX_DB_USER,
            password=self.INDEX_DB_PASSWORD or None,
            host=self.INDEX_DB_HOST,
            port=self.INDEX_DB_PORT,
            database=self.INDEX_DB_NAME,
        )

    @property
    def directory_database_url(self) -> URL:
        """SQLAlchemy URL of the employee directory database."""
        return URL.create(
            self.DIRECTORY_DB_DRIVER,
            username=self.DIRECTORY_DB_USER,
            password=self.DIRECTORY_DB_PASSWORD or None,
            host=self.DIRECTORY_DB_HOST,
            port=self.DIRECTORY_DB_PORT,
            database=self.DIRECTORY_DB_NAME,
        )

    # AWS Settings
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"

    # Rekognition Settings
    REKOGNITION_COLLECTION_ID: str = "employees"
    REKOGNITION_CONNECT_TIMEOUT: int = 5
    REKOGNITION_READ_TIMEOUT: int = 30
    REKOGNITION_MAX_ATTEMPTS: int = 3

    # Employee directory Settings
    SOURCE_IMAGE_BASE_URL: str = "http://localhost/web"
    ACTIVE_STATUS: str = "ACTIVE"
    EXTERNAL_ID_PREFIX: str = "employee_"

    # Image fetch Settings
    IMAGE_PROBE_TIMEOUT: float = 5.0
    IMAGE_DOWNLOAD_TIMEOUT: float = 15.0
    MIN_IMAGE_BYTES: int = 1000

    # Sync Settings
    SYNC_INTERVAL_SECONDS: float = 300.0
    BACKGROUND_SYNC_ENABLED: bool = True

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 1010

settings = Settings()
