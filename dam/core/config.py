from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: Literal["dev", "prod"] = Field(default="dev", description="Application environment")
    APP_NAME: str = Field(default="DAM API", description="Application title shown in OpenAPI docs")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")
    CORS_ORIGINS: list[str] = Field(default=["http://localhost:5173"], description="Allowed CORS origins")

    # Token signing. Access and refresh tokens must never share a key.
    JWT_ACCESS_TOKEN_SECRET: str = Field(default="defaultAccessTokenSecret", description="Secret key for access tokens")
    JWT_REFRESH_TOKEN_SECRET: str = Field(default="defaultRefreshTokenSecret", description="Secret key for refresh tokens")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, description="Access token expiration in minutes")
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, description="Refresh token expiration in days")
    BCRYPT_ROUNDS: int = Field(default=12, description="bcrypt cost factor for password hashes")

    COOKIE_SECURE: bool = Field(default=True, description="Secure flag for cookies (HTTPS only)")
    COOKIE_SAME_SITE: Literal["lax", "strict", "none"] = Field(default="lax", description="SameSite policy for cookies")
    COOKIE_HTTP_ONLY: bool = Field(default=True, description="HttpOnly flag for cookies")
    REFRESH_COOKIE_NAME: str = Field(default="refresh_token", description="Cookie carrying the refresh token")

    # Document store
    STORE_BACKEND: Literal["mongo", "memory"] = Field(default="mongo", description="Credential/asset store backend")
    MONGO_URI: str = Field(default="mongodb://localhost:27017/dam_system", description="MongoDB connection URI")
    MONGO_DB_NAME: str = Field(default="dam_system", description="MongoDB database name")
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = Field(default=5000, description="Server selection timeout")
    MONGO_SOCKET_TIMEOUT_MS: int = Field(default=45000, description="Socket inactivity timeout")
    MONGO_MAX_POOL_SIZE: int = Field(default=10, description="Connection pool size")

    # Refresh-token cache
    CACHE_BACKEND: Literal["redis", "memory"] = Field(default="redis", description="Revocation store backend")
    REDIS_URL: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    REDIS_CONNECT_TIMEOUT_SECONDS: float = Field(default=10.0, description="Redis connect timeout")
    REDIS_OPERATION_TIMEOUT_SECONDS: float = Field(default=5.0, description="Timeout for get/set/delete")
    REDIS_RECONNECT_INTERVAL_SECONDS: float = Field(default=5.0, description="Minimum delay between liveness probes while down")
    REDIS_RETRY_ATTEMPTS: int = Field(default=3, description="Connection retries before giving up on a command")
    REFRESH_TOKEN_KEY_PREFIX: str = Field(default="refresh_token:", description="Key prefix for refresh-token entries")

    # Rate limiting (limits string syntax)
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Toggle per-IP rate limiting")
    RATE_LIMIT_STORAGE_URI: str = Field(default="memory://", description="slowapi storage backend")
    LOGIN_RATE_LIMIT: str = Field(default="5/10 minutes", description="Login attempts per IP")
    REFRESH_RATE_LIMIT: str = Field(default="30/hour", description="Refresh attempts per IP")
    API_RATE_LIMIT: str = Field(default="100/15 minutes", description="General API requests per IP")

    # Uploads
    UPLOAD_DIR: str = Field(default="uploads", description="Directory for stored asset files")
    MAX_UPLOAD_SIZE_MB: int = Field(default=50, description="Maximum upload size in megabytes")

    @property
    def refresh_token_ttl_seconds(self) -> int:
        return self.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

    @property
    def access_token_ttl_seconds(self) -> int:
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @field_validator("ACCESS_TOKEN_EXPIRE_MINUTES", "REFRESH_TOKEN_EXPIRE_DAYS")
    @classmethod
    def validate_token_expiration(cls, v: int, info) -> int:
        if info.field_name == "ACCESS_TOKEN_EXPIRE_MINUTES" and v < 1:
            raise ValueError("Access token expiration must be at least 1 minute")
        if info.field_name == "REFRESH_TOKEN_EXPIRE_DAYS" and v < 1:
            raise ValueError("Refresh token expiration must be at least 1 day")
        return v

    @model_validator(mode="after")
    def set_environment_defaults(self):
        """Set environment-specific defaults and validations."""
        if self.JWT_ACCESS_TOKEN_SECRET == self.JWT_REFRESH_TOKEN_SECRET:
            raise ValueError(
                "JWT_ACCESS_TOKEN_SECRET and JWT_REFRESH_TOKEN_SECRET must differ"
            )

        if self.ENVIRONMENT == "prod":
            for name in ("JWT_ACCESS_TOKEN_SECRET", "JWT_REFRESH_TOKEN_SECRET"):
                if len(getattr(self, name)) < 32:
                    raise ValueError(
                        f"{name} must be at least 32 characters long in production. "
                        "Set a strong secret key in your .env file."
                    )

        # Less strict cookie settings in dev for local development
        if self.ENVIRONMENT == "dev" and self.COOKIE_SECURE is True:
            self.COOKIE_SECURE = False

        return self


def get_settings() -> Settings:
    """Load settings from the environment and .env file."""
    settings = Settings()
    logger.info(f"Loaded settings for environment '{settings.ENVIRONMENT}'")
    return settings
