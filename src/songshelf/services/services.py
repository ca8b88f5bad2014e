from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from songshelf.models.file_record import FileRecord
from songshelf.schemas import FileRecordOut, UploadOutcome
from songshelf.services.audio_metadata import (
    AudioMetadata,
    AudioMetadataError,
    parse_audio_metadata,
)
from songshelf.services.naming import (
    build_cover_image_key,
    build_cover_image_url,
    build_download_url,
    build_view_url,
    image_content_type,
    key_from_url,
    sanitize_key,
)
from songshelf.services.storage import ObjectStorage
from songshelf.settings import Settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "audio/mpeg",
    "audio/wav",
    "audio/flac",
    "audio/ogg",
}

MetadataParser = Callable[[bytes, str], AudioMetadata]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content_type: str
    data: bytes


async def read_upload_batch(
    files: list[UploadFile] | None, *, max_bytes: int
) -> list[IncomingFile]:
    """Validate a whole batch up front; nothing is stored unless every file passes."""
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    batch: list[IncomingFile] = []
    for file in files:
        content_type = file.content_type or ""
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise HTTPException(status_code=400, detail="Invalid file type.")
        if file.size is not None and file.size > max_bytes:
            raise HTTPException(status_code=413, detail=_size_limit_message(max_bytes))

        contents = await file.read()
        if len(contents) > max_bytes:
            raise HTTPException(status_code=413, detail=_size_limit_message(max_bytes))
        if not contents:
            raise HTTPException(status_code=400, detail="Empty file")

        batch.append(
            IncomingFile(
                filename=file.filename or "audio",
                content_type=content_type,
                data=contents,
            )
        )
    return batch


def _size_limit_message(max_bytes: int) -> str:
    return f"File too large. Maximum size is {max_bytes // (1024 * 1024)} MB."


def _read_metadata(incoming: IncomingFile, parser: MetadataParser) -> AudioMetadata:
    if not incoming.content_type.startswith("audio/"):
        return AudioMetadata()
    try:
        return parser(incoming.data, incoming.content_type)
    except AudioMetadataError as exc:
        logger.warning("Ignoring unreadable metadata in %s: %s", incoming.filename, exc)
        return AudioMetadata()


def _rollback_objects(storage: ObjectStorage, keys: list[str]) -> None:
    for key in reversed(keys):
        try:
            storage.delete_object(key)
        except (BotoCoreError, ClientError):
            logger.exception("Could not remove %s after a failed upload", key)


def store_file(
    incoming: IncomingFile,
    *,
    settings: Settings,
    storage: ObjectStorage,
    session_factory: sessionmaker,
    metadata_parser: MetadataParser = parse_audio_metadata,
    now: Callable[[], datetime] = _utcnow,
) -> FileRecordOut:
    key = sanitize_key(incoming.filename)
    metadata = _read_metadata(incoming, metadata_parser)
    written: list[str] = []

    try:
        cover_image_url = None
        if metadata.picture is not None:
            cover_key = build_cover_image_key(
                key,
                language=metadata.language,
                year=metadata.year,
                picture_mime=metadata.picture.mime,
                now=now(),
            )
            storage.put_object(
                cover_key,
                metadata.picture.data,
                content_type=image_content_type(metadata.picture.mime),
            )
            written.append(cover_key)
            cover_image_url = build_cover_image_url(settings.BASE_URL, cover_key)

        storage.put_object(key, incoming.data, content_type=incoming.content_type)
        written.append(key)

        with session_factory() as session:
            record = FileRecord(
                filename=key,
                key=key,
                view_url=build_view_url(settings.BASE_URL, key),
                download_url=build_download_url(settings.BASE_URL, key),
                cover_image_url=cover_image_url,
            )
            session.add(record)
            session.commit()
            session.refresh(record)
            return FileRecordOut.model_validate(record)
    except Exception:
        _rollback_objects(storage, written)
        raise


async def upload_batch(
    batch: list[IncomingFile],
    *,
    settings: Settings,
    storage: ObjectStorage,
    session_factory: sessionmaker,
    metadata_parser: MetadataParser = parse_audio_metadata,
) -> list[UploadOutcome]:
    async def _run(incoming: IncomingFile) -> UploadOutcome:
        try:
            record = await asyncio.to_thread(
                store_file,
                incoming,
                settings=settings,
                storage=storage,
                session_factory=session_factory,
                metadata_parser=metadata_parser,
            )
        except Exception:
            logger.exception("Upload of %s failed", incoming.filename)
            return UploadOutcome(
                filename=incoming.filename, status="error", error="File upload failed"
            )
        return UploadOutcome(filename=incoming.filename, status="ok", file=record)

    outcomes: list[UploadOutcome] = []
    for finished in asyncio.as_completed([_run(incoming) for incoming in batch]):
        outcomes.append(await finished)
    return outcomes


def list_files(session_factory: sessionmaker) -> list[FileRecordOut]:
    with session_factory() as session:
        records = session.execute(
            select(FileRecord).order_by(FileRecord.uploaded_at.desc(), FileRecord.id.desc())
        ).scalars()
        return [FileRecordOut.model_validate(record) for record in records]


def delete_file(
    file_id: int, *, storage: ObjectStorage, session_factory: sessionmaker
) -> None:
    with session_factory() as session:
        try:
            record = session.get(FileRecord, file_id)
        except SQLAlchemyError as exc:
            logger.exception("Lookup of file %s failed", file_id)
            raise HTTPException(status_code=500, detail="Failed to delete file") from exc
        if record is None:
            raise HTTPException(status_code=404, detail="File not found")

        step = "primary object"
        try:
            storage.delete_object(record.key)
            if record.cover_image_url:
                step = "cover image"
                storage.delete_object(key_from_url(record.cover_image_url))
            step = "database record"
            session.delete(record)
            session.commit()
        except (BotoCoreError, ClientError, SQLAlchemyError) as exc:
            logger.exception("Delete of file %s failed at %s", file_id, step)
            raise HTTPException(status_code=500, detail="Failed to delete file") from exc
