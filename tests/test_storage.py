"""Unit tests for the S3 storage wrapper"""

from datetime import datetime
from urllib.parse import parse_qs, urlsplit

import pytest

from songshelf.services.storage import ObjectStorage


@pytest.fixture
def s3_storage(settings) -> ObjectStorage:
    return ObjectStorage.from_settings(settings)


def test_put_object_sets_inline_disposition(storage, s3_client):
    storage.put_object("My_Song.mp3", b"audio", content_type="audio/mpeg")

    stored = s3_client.objects["My_Song.mp3"]
    assert stored["Body"] == b"audio"
    assert stored["ContentType"] == "audio/mpeg"
    assert stored["ContentDisposition"] == 'inline; filename="My_Song.mp3"'


def test_public_url_defaults_to_virtual_hosted_bucket(storage):
    assert (
        storage.public_url("My_Song.mp3")
        == "https://song-bucket.s3.us-east-1.amazonaws.com/My_Song.mp3"
    )


def test_public_url_honours_custom_base(s3_client):
    storage = ObjectStorage(
        s3_client,
        bucket_name="song-bucket",
        region="auto",
        public_base_url="https://cdn.example.com",
    )
    assert storage.public_url("Café Song.mp3") == "https://cdn.example.com/Caf%C3%A9%20Song.mp3"


def test_presigned_download_url_expires_after_sixty_seconds(s3_storage):
    url = s3_storage.presigned_download_url("My_Song.mp3", expires_in=60)
    query = parse_qs(urlsplit(url).query)

    assert urlsplit(url).path.endswith("/My_Song.mp3")
    assert query["X-Amz-Expires"] == ["60"]
    assert query["response-content-disposition"] == ['attachment; filename="My_Song.mp3"']

    signed_at = datetime.strptime(query["X-Amz-Date"][0], "%Y%m%dT%H%M%SZ")
    assert signed_at.year >= 2024


def test_presigned_url_window_tracks_requested_ttl(s3_storage):
    short = parse_qs(urlsplit(s3_storage.presigned_download_url("a.mp3", expires_in=1)).query)
    assert short["X-Amz-Expires"] == ["1"]


def test_iter_objects_lists_bucket(storage, s3_client):
    storage.put_object("a.mp3", b"1", content_type="audio/mpeg")
    storage.put_object("b.mp3", b"2", content_type="audio/mpeg")

    assert sorted(key for key, _ in storage.iter_objects()) == ["a.mp3", "b.mp3"]
