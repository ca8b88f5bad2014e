from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

_ROOT_DIR = Path(__file__).resolve().parents[2]
_ENV_PATH = _ROOT_DIR / ".env"
load_dotenv(_ENV_PATH)


def get_base_url() -> str:
    return os.getenv("BASE_URL", "http://127.0.0.1:4000").rstrip("/")


def get_host() -> str:
    return os.getenv("HOST", "0.0.0.0")


def get_port() -> int:
    return int(os.getenv("PORT", "4000"))


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    user = os.getenv("POSTGRES_USER", "songshelf")
    password = os.getenv("POSTGRES_PASSWORD", "songshelf")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db_name = os.getenv("POSTGRES_DB", "songshelf")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db_name}"


def get_aws_region() -> str:
    return os.getenv("AWS_REGION", "us-east-1")


def get_aws_access_key_id() -> str | None:
    return os.getenv("AWS_ACCESS_KEY_ID")


def get_aws_secret_access_key() -> str | None:
    return os.getenv("AWS_SECRET_ACCESS_KEY")


def get_bucket_name() -> str:
    return os.getenv("AWS_BUCKET_NAME", "")


def get_s3_endpoint_url() -> str | None:
    return os.getenv("S3_ENDPOINT_URL") or None


def get_s3_public_base_url() -> str | None:
    value = os.getenv("S3_PUBLIC_BASE_URL")
    return value.rstrip("/") if value else None


def get_max_upload_bytes() -> int:
    return int(os.getenv("MAX_UPLOAD_MB", "50")) * 1024 * 1024


def get_download_url_ttl_seconds() -> int:
    return int(os.getenv("DOWNLOAD_URL_TTL_SECONDS", "60"))


def get_cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_celery_broker_url() -> str:
    return os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")


def get_celery_result_backend() -> str:
    return os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")


def get_reconcile_min_age_seconds() -> int:
    return int(os.getenv("RECONCILE_MIN_AGE_SECONDS", "3600"))
