from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


DEFAULT_URL_TEMPLATE = "https://{bucket}.s3.{region}.amazonaws.com/{key}"


class Settings(BaseSettings):
    aws_region: Optional[str] = None
    aws_bucket: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    public_url_template: str = DEFAULT_URL_TEMPLATE

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Upload handling
    default_directory: str = "uploads"
    max_upload_size: int = 10 << 20

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_settings() -> Settings:
    """Read settings from the environment (and .env when present)."""
    return Settings()
