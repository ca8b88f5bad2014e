from __future__ import annotations

from celery import Celery

from songshelf.config import get_celery_broker_url, get_celery_result_backend

celery_app = Celery(
    "songshelf",
    broker=get_celery_broker_url(),
    backend=get_celery_result_backend(),
    include=["songshelf.tasks.reconciliation"],
)

celery_app.conf.task_track_started = True
