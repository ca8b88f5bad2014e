from __future__ import annotations

import base64
import binascii
import logging
import struct
from dataclasses import dataclass
from io import BytesIO

from mutagen import MutagenError
from mutagen.flac import FLAC, Picture
from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen.oggvorbis import OggVorbis
from mutagen.wave import WAVE

logger = logging.getLogger(__name__)


class AudioMetadataError(Exception):
    pass


@dataclass(frozen=True)
class EmbeddedPicture:
    data: bytes
    mime: str | None


@dataclass(frozen=True)
class AudioMetadata:
    year: int | None = None
    language: str | None = None
    picture: EmbeddedPicture | None = None


def _parse_year(value: object) -> int | None:
    text = str(value).strip()
    if len(text) < 4 or not text[:4].isdigit():
        return None
    return int(text[:4])


def _first(values: list[str] | None) -> str | None:
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


def _from_id3(tags: ID3 | None) -> AudioMetadata:
    if tags is None:
        return AudioMetadata()

    year = None
    for frame_id in ("TDRC", "TYER", "TDOR"):
        frame = tags.get(frame_id)
        if frame is not None and frame.text:
            year = _parse_year(frame.text[0])
            if year is not None:
                break

    language_frame = tags.get("TLAN")
    language = _first(list(language_frame.text)) if language_frame is not None else None

    picture = None
    pictures = tags.getall("APIC")
    if pictures:
        picture = EmbeddedPicture(data=pictures[0].data, mime=pictures[0].mime or None)

    return AudioMetadata(year=year, language=language, picture=picture)


def _from_vorbis_comments(tags, pictures: list[Picture]) -> AudioMetadata:
    if tags is None:
        tags = {}
    year = None
    for field in ("date", "year", "originaldate"):
        value = _first(tags.get(field))
        if value:
            year = _parse_year(value)
            if year is not None:
                break

    picture = None
    if pictures:
        picture = EmbeddedPicture(data=pictures[0].data, mime=pictures[0].mime or None)

    return AudioMetadata(year=year, language=_first(tags.get("language")), picture=picture)


def _ogg_pictures(audio: OggVorbis) -> list[Picture]:
    pictures = []
    for encoded in audio.get("metadata_block_picture", []):
        try:
            pictures.append(Picture(base64.b64decode(encoded)))
        except (binascii.Error, MutagenError):
            logger.debug("Skipping unreadable METADATA_BLOCK_PICTURE entry")
    return pictures


def parse_audio_metadata(data: bytes, content_type: str) -> AudioMetadata:
    """
    Read release year, language and the first embedded picture from an audio payload.

    MP3 and WAV carry ID3 frames (TDRC/TYER, TLAN, APIC); FLAC and Ogg carry
    Vorbis comments (DATE, LANGUAGE) plus picture blocks. A payload without
    any tag container yields empty metadata. Corrupt containers raise
    AudioMetadataError.
    """
    if not content_type.startswith("audio/"):
        return AudioMetadata()

    buffer = BytesIO(data)
    try:
        if content_type == "audio/mpeg":
            try:
                return _from_id3(ID3(buffer))
            except ID3NoHeaderError:
                return AudioMetadata()
        if content_type in {"audio/wav", "audio/x-wav", "audio/wave"}:
            return _from_id3(WAVE(buffer).tags)
        if content_type == "audio/flac":
            audio = FLAC(buffer)
            return _from_vorbis_comments(audio.tags, audio.pictures)
        if content_type == "audio/ogg":
            audio = OggVorbis(buffer)
            return _from_vorbis_comments(audio.tags, _ogg_pictures(audio))
    except (MutagenError, EOFError, ValueError, struct.error) as exc:
        raise AudioMetadataError(f"Failed to read {content_type} metadata: {exc}") from exc

    return AudioMetadata()
