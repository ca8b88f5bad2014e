from __future__ import annotations

import random
import re
from datetime import datetime
from pathlib import PurePosixPath
from urllib.parse import quote, unquote, urlsplit

_WHITESPACE = re.compile(r"\s+")
# Characters JavaScript's encodeURIComponent leaves untouched.
_URI_COMPONENT_SAFE = "-_.!~*'()"

_IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
}


def sanitize_key(filename: str) -> str:
    return _WHITESPACE.sub("_", filename)


def encode_key(key: str) -> str:
    return quote(key, safe=_URI_COMPONENT_SAFE)


def build_view_url(base_url: str, key: str) -> str:
    return f"{base_url}/view/{encode_key(key)}"


def build_download_url(base_url: str, key: str) -> str:
    return f"{base_url}/download/{encode_key(key)}"


def build_cover_image_url(base_url: str, cover_key: str) -> str:
    return f"{base_url}/viewCoverImage/{encode_key(cover_key)}"


def key_from_url(url: str) -> str:
    """Recover a storage key from the last path segment of a view/download/cover URL."""
    path = urlsplit(url).path
    return unquote(path.rsplit("/", 1)[-1])


def image_extension(mime: str | None) -> str:
    if not mime:
        return "jpg"
    normalized = mime.strip().lower()
    if normalized in _IMAGE_EXTENSIONS:
        return _IMAGE_EXTENSIONS[normalized]
    # Old ID3 tags store a bare format ("PNG", "JPG") instead of a MIME type.
    subtype = normalized.split("/")[-1]
    if subtype == "jpeg" or not subtype.isalnum():
        return "jpg"
    return subtype


def image_content_type(mime: str | None) -> str:
    extension = image_extension(mime)
    if mime and "/" in mime and mime.strip().lower().split("/")[-1].isalnum():
        return mime.strip().lower()
    return f"image/{'jpeg' if extension == 'jpg' else extension}"


def build_cover_image_key(
    key: str,
    *,
    language: str | None,
    year: int | None,
    picture_mime: str | None,
    now: datetime,
    rng: random.Random | None = None,
) -> str:
    rng = rng or random.Random()
    base = PurePosixPath(key).stem
    suffix = f"{now:%Y%m%d}{rng.randint(0, 999_999):06d}"
    language_part = sanitize_key(language) if language else "null"
    year_part = str(year) if year is not None else "null"
    return f"{base}-{language_part}-{year_part}-{suffix}.{image_extension(picture_mime)}"
