from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from songshelf.config import get_reconcile_min_age_seconds
from songshelf.core.celery_app import celery_app
from songshelf.models.database import build_engine, build_session_factory
from songshelf.models.file_record import FileRecord
from songshelf.services.naming import key_from_url
from songshelf.services.storage import ObjectStorage
from songshelf.settings import Settings

logger = logging.getLogger(__name__)


def _referenced_keys(session_factory: sessionmaker) -> set[str]:
    with session_factory() as session:
        rows = session.execute(select(FileRecord.key, FileRecord.cover_image_url)).all()
    keys: set[str] = set()
    for key, cover_image_url in rows:
        keys.add(key)
        if cover_image_url:
            keys.add(key_from_url(cover_image_url))
    return keys


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def find_orphaned_objects(
    storage: ObjectStorage,
    session_factory: sessionmaker,
    *,
    min_age: timedelta,
    now: datetime | None = None,
) -> list[str]:
    """Keys in the bucket that no record points at and that are older than ``min_age``.

    Young objects are skipped so an upload whose record is still being written
    is never mistaken for an orphan.
    """
    cutoff = (now or datetime.now(timezone.utc)) - min_age
    referenced = _referenced_keys(session_factory)
    return [
        key
        for key, last_modified in storage.iter_objects()
        if key not in referenced and _as_utc(last_modified) <= cutoff
    ]


def find_dangling_records(
    storage: ObjectStorage, session_factory: sessionmaker
) -> list[int]:
    present = {key for key, _ in storage.iter_objects()}
    with session_factory() as session:
        rows = session.execute(select(FileRecord.id, FileRecord.key)).all()
    return [record_id for record_id, key in rows if key not in present]


def reconcile(
    storage: ObjectStorage,
    session_factory: sessionmaker,
    *,
    min_age_seconds: int,
    dry_run: bool = True,
    now: datetime | None = None,
) -> dict[str, object]:
    orphans = find_orphaned_objects(
        storage, session_factory, min_age=timedelta(seconds=min_age_seconds), now=now
    )
    dangling = find_dangling_records(storage, session_factory)

    deleted: list[str] = []
    if not dry_run:
        for key in orphans:
            storage.delete_object(key)
            deleted.append(key)

    if dangling:
        logger.warning("Records without a stored object: %s", dangling)
    logger.info(
        "Reconciliation found %d orphaned objects, deleted %d", len(orphans), len(deleted)
    )
    return {
        "orphaned_objects": orphans,
        "deleted_objects": deleted,
        "dangling_records": dangling,
        "dry_run": dry_run,
    }


@celery_app.task(name="songshelf.reconcile_storage")
def reconcile_storage(
    min_age_seconds: int | None = None, dry_run: bool = True
) -> dict[str, object]:
    settings = Settings.from_env()
    session_factory = build_session_factory(build_engine(settings.DATABASE_URL))
    return reconcile(
        ObjectStorage.from_settings(settings),
        session_factory,
        min_age_seconds=(
            min_age_seconds if min_age_seconds is not None else get_reconcile_min_age_seconds()
        ),
        dry_run=dry_run,
    )
