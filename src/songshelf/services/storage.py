from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Any
from urllib.parse import quote

import boto3
from botocore.config import Config

from songshelf.settings import Settings

logger = logging.getLogger(__name__)


class ObjectStorage:
    """Thin wrapper over an S3 client bound to one bucket."""

    def __init__(
        self,
        client: Any,
        *,
        bucket_name: str,
        region: str,
        public_base_url: str | None = None,
    ) -> None:
        self.client = client
        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = public_base_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorage":
        client = boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            config=Config(signature_version="s3v4", retries={"max_attempts": 1}),
        )
        return cls(
            client,
            bucket_name=settings.AWS_BUCKET_NAME,
            region=settings.AWS_REGION,
            public_base_url=settings.S3_PUBLIC_BASE_URL,
        )

    def put_object(self, key: str, body: bytes, *, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=body,
            ContentType=content_type,
            ContentDisposition=f'inline; filename="{key}"',
        )
        logger.info("Stored s3://%s/%s (%d bytes)", self.bucket_name, key, len(body))

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket_name, Key=key)
        logger.info("Deleted s3://%s/%s", self.bucket_name, key)

    def public_url(self, key: str) -> str:
        path = quote(key, safe="/")
        if self.public_base_url:
            return f"{self.public_base_url}/{path}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{path}"

    def presigned_download_url(self, key: str, *, expires_in: int) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self.bucket_name,
                "Key": key,
                "ResponseContentDisposition": f'attachment; filename="{key}"',
            },
            ExpiresIn=expires_in,
        )

    def iter_objects(self) -> Iterator[tuple[str, datetime]]:
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket_name):
            for item in page.get("Contents", []):
                yield item["Key"], item["LastModified"]
