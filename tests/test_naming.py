"""Unit tests for storage key and link derivation"""

import random
import re
from datetime import datetime, timezone

import pytest

from songshelf.services.naming import (
    build_cover_image_key,
    build_cover_image_url,
    build_download_url,
    build_view_url,
    image_content_type,
    image_extension,
    key_from_url,
    sanitize_key,
)

BASE = "http://songs.test"


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("My Song.mp3", "My_Song.mp3"),
        ("my  song\tfinal.mp3", "my_song_final.mp3"),
        (" leading.wav", "_leading.wav"),
        ("no-spaces.flac", "no-spaces.flac"),
    ],
)
def test_sanitize_key_replaces_whitespace_runs(filename, expected):
    assert sanitize_key(filename) == expected


def test_view_and_download_urls_use_base_path():
    assert build_view_url(BASE, "My_Song.mp3") == f"{BASE}/view/My_Song.mp3"
    assert build_download_url(BASE, "My_Song.mp3") == f"{BASE}/download/My_Song.mp3"
    assert build_cover_image_url(BASE, "c.jpg") == f"{BASE}/viewCoverImage/c.jpg"


def test_urls_encode_like_encode_uri_component():
    url = build_view_url(BASE, "Rock&Roll#1?(live)!.mp3")
    assert url == f"{BASE}/view/Rock%26Roll%231%3F(live)!.mp3"


@pytest.mark.parametrize(
    "key",
    ["My_Song.mp3", "Canción_Ñandú.flac", "50%_off/bonus.ogg", "a+b=c&d.wav"],
)
def test_key_round_trips_through_links(key):
    assert key_from_url(build_view_url(BASE, key)) == key
    assert key_from_url(build_download_url(BASE, key)) == key


def test_cover_image_key_layout():
    key = build_cover_image_key(
        "My_Song.mp3",
        language="English",
        year=2020,
        picture_mime="image/jpeg",
        now=datetime(2024, 3, 9, tzinfo=timezone.utc),
        rng=random.Random(7),
    )
    assert re.fullmatch(r"My_Song-English-2020-20240309\d{6}\.jpg", key)


def test_cover_image_key_uses_null_for_missing_tags():
    key = build_cover_image_key(
        "Track.flac",
        language=None,
        year=None,
        picture_mime="image/png",
        now=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    assert re.fullmatch(r"Track-null-null-20240101\d{6}\.png", key)


def test_cover_image_suffix_is_zero_padded():
    class LowRandom(random.Random):
        def randint(self, a, b):
            return 42

    key = build_cover_image_key(
        "x.mp3",
        language="en",
        year=1999,
        picture_mime="image/jpeg",
        now=datetime(2021, 12, 31, tzinfo=timezone.utc),
        rng=LowRandom(),
    )
    assert key == "x-en-1999-20211231000042.jpg"


@pytest.mark.parametrize(
    "mime, extension, content_type",
    [
        ("image/jpeg", "jpg", "image/jpeg"),
        ("image/png", "png", "image/png"),
        ("PNG", "png", "image/png"),
        ("jpg", "jpg", "image/jpeg"),
        (None, "jpg", "image/jpeg"),
        ("-->", "jpg", "image/jpeg"),
        ("image/svg+xml", "jpg", "image/jpeg"),
    ],
)
def test_image_format_mapping(mime, extension, content_type):
    assert image_extension(mime) == extension
    assert image_content_type(mime) == content_type
