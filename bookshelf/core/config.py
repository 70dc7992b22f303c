import json
from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def parse_list_setting(v):
    """Parse a list setting given as a comma-separated string or a JSON array."""
    if not isinstance(v, str):
        return v
    if v.strip().startswith("["):
        return json.loads(v)
    return [x.strip() for x in v.split(",") if x.strip()]


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # FastAPI Configuration
    PROJECT_NAME: str = "Bookshelf API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # PostgreSQL Configuration
    DATABASE_URL: Optional[str] = None  # Full connection URL (overrides parts below)
    DATABASE_NAME: str = "bookshelf"
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432

    # Connection Pool Settings
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False  # SQL query logging

    # S3-compatible Object Storage Configuration
    S3_ENDPOINT_URL: Optional[str] = None
    R2_ACCOUNT_ID: Optional[str] = Field(
        default=None,
        description="Cloudflare R2 account id, used to derive the endpoint when S3_ENDPOINT_URL is unset",
    )
    S3_REGION: str = "auto"
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_BUCKET_NAME: str = "bookshelf-cg"
    S3_COVER_BUCKET_NAME: Optional[str] = None  # Defaults to S3_BUCKET_NAME

    # Document Configuration
    MAX_DOCUMENT_SIZE_BYTES: int = 20 * 1024 * 1024  # 20MB in bytes
    ALLOWED_DOCUMENT_CONTENT_TYPES: Annotated[List[str], NoDecode] = [
        "application/pdf",
        "application/epub+zip",
    ]

    UPLOAD_URL_EXPIRATION_MINUTES: int = 15
    DOWNLOAD_URL_EXPIRATION_MINUTES: int = 15
    COVER_URL_EXPIRATION_MINUTES: int = 60

    # Pending upload sweep
    PENDING_SWEEP_ENABLED: bool = True
    PENDING_SWEEP_INTERVAL_SECONDS: int = Field(
        default=600, description="Seconds between sweeps of expired pending uploads"
    )
    PENDING_SWEEP_GRACE_MINUTES: int = Field(
        default=15,
        description="Minutes past upload URL expiry before a pending record is swept",
    )
    PENDING_SWEEP_BATCH_SIZE: int = 100

    # Identity provider (bearer token verification)
    AUTH_JWKS_URL: Optional[str] = Field(
        default=None, description="JWKS endpoint of the identity provider"
    )
    AUTH_ISSUER: Optional[str] = None
    AUTH_AUDIENCE: Optional[str] = None
    AUTH_ALGORITHMS: Annotated[List[str], NoDecode] = ["RS256"]
    AUTH_LEEWAY_SECONDS: int = 5

    # Book metadata lookup (OpenLibrary)
    OPENLIBRARY_BASE_URL: str = "https://openlibrary.org"
    OPENLIBRARY_COVERS_URL: str = "https://covers.openlibrary.org"
    METADATA_LOOKUP_TIMEOUT_SECONDS: float = 10.0
    METADATA_LOOKUP_MAX_RETRIES: int = 3
    METADATA_LOOKUP_RETRY_DELAY_SECONDS: float = 1.0

    # CORS Settings
    CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: Annotated[List[str], NoDecode] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_HEADERS: Annotated[List[str], NoDecode] = [
        "Authorization",
        "Content-Type",
        "X-Requested-With",
        "Accept",
        "Origin",
    ]

    @field_validator(
        "ALLOWED_DOCUMENT_CONTENT_TYPES",
        "AUTH_ALGORITHMS",
        "CORS_ORIGINS",
        "CORS_METHODS",
        "CORS_HEADERS",
        mode="before",
    )
    @classmethod
    def parse_list_settings(cls, v):
        """List settings accept a comma-separated string or a JSON array."""
        return parse_list_setting(v)

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # json or text

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        """Check if the application is running in development mode."""
        return self.ENVIRONMENT.lower() in ["development", "dev", "local"]

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production mode."""
        return self.ENVIRONMENT.lower() in ["production", "prod"]

    @property
    def database_url(self) -> str:
        """Resolve the async database URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @property
    def s3_endpoint_url(self) -> Optional[str]:
        """Resolve the object storage endpoint (explicit URL, then R2 account)."""
        if self.S3_ENDPOINT_URL:
            return self.S3_ENDPOINT_URL.rstrip("/")
        if self.R2_ACCOUNT_ID:
            return f"https://{self.R2_ACCOUNT_ID}.r2.cloudflarestorage.com"
        return None

    @property
    def cover_bucket_name(self) -> str:
        """Bucket that stores cover images."""
        return self.S3_COVER_BUCKET_NAME or self.S3_BUCKET_NAME


# Global settings instance
settings = Settings()
