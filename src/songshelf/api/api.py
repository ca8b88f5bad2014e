from __future__ import annotations

import asyncio
import logging

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from songshelf.schemas import FileRecordOut
from songshelf.services.audio_metadata import parse_audio_metadata
from songshelf.services.services import (
    MetadataParser,
    delete_file,
    list_files,
    read_upload_batch,
    upload_batch,
)
from songshelf.services.storage import ObjectStorage
from songshelf.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_session_factory(request: Request) -> sessionmaker:
    return request.app.state.session_factory


def get_metadata_parser() -> MetadataParser:
    return parse_audio_metadata


@router.post("/upload")
async def upload_songs(
    files: list[UploadFile] | None = File(None),
    settings: Settings = Depends(get_settings),
    storage: ObjectStorage = Depends(get_storage),
    session_factory: sessionmaker = Depends(get_session_factory),
    metadata_parser: MetadataParser = Depends(get_metadata_parser),
) -> JSONResponse:
    batch = await read_upload_batch(files, max_bytes=settings.MAX_UPLOAD_BYTES)
    outcomes = await upload_batch(
        batch,
        settings=settings,
        storage=storage,
        session_factory=session_factory,
        metadata_parser=metadata_parser,
    )

    results = [outcome.model_dump(mode="json", by_alias=True) for outcome in outcomes]
    stored = [
        outcome.file.model_dump(mode="json", by_alias=True)
        for outcome in outcomes
        if outcome.ok and outcome.file is not None
    ]
    if not stored:
        return JSONResponse(
            status_code=500, content={"error": "File upload failed", "results": results}
        )
    if len(stored) < len(outcomes):
        return JSONResponse(
            status_code=207,
            content={
                "message": "Some files failed to upload",
                "files": stored,
                "results": results,
            },
        )
    return JSONResponse(
        content={
            "message": "Files uploaded successfully!",
            "files": stored,
            "results": results,
        }
    )


@router.get("/files", response_model=list[FileRecordOut])
def get_files(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> list[FileRecordOut]:
    try:
        return list_files(session_factory)
    except SQLAlchemyError as exc:
        logger.exception("Fetching files failed")
        raise HTTPException(status_code=500, detail="Failed to retrieve files") from exc


def _inline_redirect(url: str) -> RedirectResponse:
    response = RedirectResponse(url, status_code=302)
    response.headers["Content-Disposition"] = "inline"
    return response


@router.get("/view/{key:path}")
def view_file(key: str, storage: ObjectStorage = Depends(get_storage)) -> RedirectResponse:
    return _inline_redirect(storage.public_url(key))


@router.get("/viewCoverImage/{key:path}")
def view_cover_image(
    key: str, storage: ObjectStorage = Depends(get_storage)
) -> RedirectResponse:
    return _inline_redirect(storage.public_url(key))


@router.get("/download/{key:path}")
async def download_file(
    key: str,
    settings: Settings = Depends(get_settings),
    storage: ObjectStorage = Depends(get_storage),
) -> RedirectResponse:
    try:
        signed_url = await asyncio.to_thread(
            storage.presigned_download_url,
            key,
            expires_in=settings.DOWNLOAD_URL_TTL_SECONDS,
        )
    except (BotoCoreError, ClientError) as exc:
        logger.exception("Signing download URL for %s failed", key)
        raise HTTPException(
            status_code=500, detail="Failed to generate download link"
        ) from exc
    return RedirectResponse(signed_url, status_code=302)


@router.delete("/files/{file_id}")
def remove_file(
    file_id: int,
    storage: ObjectStorage = Depends(get_storage),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> dict[str, str]:
    delete_file(file_id, storage=storage, session_factory=session_factory)
    return {"message": "File deleted successfully"}


@router.get("/config")
def get_config(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"BASE_URL": settings.BASE_URL}


@router.get("/", response_class=PlainTextResponse)
def banner(settings: Settings = Depends(get_settings)) -> str:
    return f"Server running on - {settings.BASE_URL}"
