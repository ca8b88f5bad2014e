"""Pytest configuration and shared fixtures"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generator

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from mutagen.id3 import APIC, ID3, TDRC, TLAN

from songshelf.api.api import get_metadata_parser
from songshelf.main import create_app
from songshelf.models import FileRecord  # noqa: F401
from songshelf.models.database import Base, build_engine, build_session_factory
from songshelf.services.audio_metadata import AudioMetadata
from songshelf.services.storage import ObjectStorage
from songshelf.settings import Settings

BASE_URL = "http://songs.test"
BUCKET = "song-bucket"


class FakePaginator:
    def __init__(self, client: "FakeS3Client") -> None:
        self.client = client

    def paginate(self, *, Bucket: str):
        yield {
            "Contents": [
                {"Key": key, "LastModified": obj["LastModified"]}
                for key, obj in self.client.objects.items()
            ]
        }


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client"""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, object]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: set[tuple[str, str]] = set()

    def fail(self, operation: str, key: str) -> None:
        self.failures.add((operation, key))

    def _check(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if (operation, key) in self.failures:
            raise ClientError(
                {"Error": {"Code": "InternalError", "Message": "storage unavailable"}},
                operation,
            )

    def put_object(self, *, Bucket, Key, Body, ContentType, ContentDisposition):
        self._check("put_object", Key)
        self.objects[Key] = {
            "Body": Body,
            "ContentType": ContentType,
            "ContentDisposition": ContentDisposition,
            "LastModified": datetime.now(timezone.utc),
        }

    def delete_object(self, *, Bucket, Key):
        self._check("delete_object", Key)
        self.objects.pop(Key, None)

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self._check("generate_presigned_url", Params["Key"])
        return f"https://signed.example/{Params['Key']}?expires={ExpiresIn}"

    def get_paginator(self, name: str) -> FakePaginator:
        return FakePaginator(self)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        BASE_URL=BASE_URL,
        DATABASE_URL=f"sqlite:///{tmp_path / 'songshelf.db'}",
        AWS_REGION="us-east-1",
        AWS_ACCESS_KEY_ID="testing",
        AWS_SECRET_ACCESS_KEY="testing",
        AWS_BUCKET_NAME=BUCKET,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def session_factory(settings):
    engine = build_engine(settings.DATABASE_URL)
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def storage(s3_client) -> ObjectStorage:
    return ObjectStorage(s3_client, bucket_name=BUCKET, region="us-east-1")


@pytest.fixture
def app(settings, storage, session_factory):
    app = create_app(settings, storage=storage, session_factory=session_factory)
    # Payload bytes -> metadata the parser reports; other payloads carry no tags.
    by_payload: dict[bytes, AudioMetadata] = {}

    def fake_parser(data: bytes, content_type: str) -> AudioMetadata:
        return by_payload.get(data, AudioMetadata())

    app.state.fake_metadata = by_payload
    app.dependency_overrides[get_metadata_parser] = lambda: fake_parser
    return app


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0" + b"cover-art" * 16


@pytest.fixture
def make_tagged_mp3(tmp_path, jpeg_bytes):
    """Build an MP3 payload whose ID3 tag carries a year, language and cover picture"""

    def _make(*, year="2020", language="English", picture=True) -> bytes:
        path = tmp_path / "tagged.mp3"
        path.write_bytes(b"")
        tags = ID3()
        if year:
            tags.add(TDRC(encoding=3, text=[year]))
        if language:
            tags.add(TLAN(encoding=3, text=[language]))
        if picture:
            tags.add(
                APIC(encoding=3, mime="image/jpeg", type=3, desc="Cover", data=jpeg_bytes)
            )
        tags.save(str(path))
        return path.read_bytes() + b"\x00" * 256

    return _make
