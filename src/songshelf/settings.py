from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from songshelf.config import (
    get_aws_access_key_id,
    get_aws_region,
    get_aws_secret_access_key,
    get_base_url,
    get_bucket_name,
    get_cors_origins,
    get_database_url,
    get_download_url_ttl_seconds,
    get_log_level,
    get_max_upload_bytes,
    get_s3_endpoint_url,
    get_s3_public_base_url,
)


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and passed around explicitly."""

    BASE_URL: str
    DATABASE_URL: str
    AWS_REGION: str
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    AWS_BUCKET_NAME: str
    S3_ENDPOINT_URL: str | None = None
    S3_PUBLIC_BASE_URL: str | None = None
    MAX_UPLOAD_BYTES: int = 50 * 1024 * 1024
    DOWNLOAD_URL_TTL_SECONDS: int = 60
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            BASE_URL=get_base_url(),
            DATABASE_URL=get_database_url(),
            AWS_REGION=get_aws_region(),
            AWS_ACCESS_KEY_ID=get_aws_access_key_id(),
            AWS_SECRET_ACCESS_KEY=get_aws_secret_access_key(),
            AWS_BUCKET_NAME=get_bucket_name(),
            S3_ENDPOINT_URL=get_s3_endpoint_url(),
            S3_PUBLIC_BASE_URL=get_s3_public_base_url(),
            MAX_UPLOAD_BYTES=get_max_upload_bytes(),
            DOWNLOAD_URL_TTL_SECONDS=get_download_url_ttl_seconds(),
            CORS_ORIGINS=get_cors_origins(),
            LOG_LEVEL=get_log_level(),
        )
