from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = Field("sqlite:///usermgr.db", env="DATABASE_URL")
    api_title: str = Field("Gestion des utilisateurs API", env="API_TITLE")
    jwt_secret: str = Field("change-me", env="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", env="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 24, env="ACCESS_TOKEN_EXPIRE_MINUTES")
    password_min_length: int = Field(6, env="PASSWORD_MIN_LENGTH")
    password_hash_iterations: int = Field(260_000, env="PASSWORD_HASH_ITERATIONS")
    upload_path_prefix: str = Field("/uploads", env="UPLOAD_PATH_PREFIX")
    rate_limit_enabled: bool = Field(True, env="RATE_LIMIT_ENABLED")
    auth_rate_limit: str = Field("5/minute", env="AUTH_RATE_LIMIT")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], env="CORS_ORIGINS")
    seed_demo_data: bool = Field(False, env="SEED_DEMO_DATA")
    log_level: str = Field("INFO", env="LOG_LEVEL")


settings = Settings()
