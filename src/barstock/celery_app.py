"""Celery application configuration for background task processing."""

import os

from celery import Celery

from barstock.config import settings

# Redis broker URL from settings
REDIS_URL = settings.redis_url

# Convert async URL to sync for Celery result backend
RESULT_BACKEND_URL = settings.database_url.replace("+asyncpg", "").replace(
    "postgresql://", "db+postgresql://"
)

# Create Celery application
celery_app = Celery(
    "barstock",
    broker=REDIS_URL,
    backend=RESULT_BACKEND_URL,
    include=["barstock.tasks.inventory"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    # Result settings
    result_expires=86400 * 7,  # 7 days
    # Retry settings (default for all tasks)
    task_default_retry_delay=60,
    task_max_retries=3,
    # Queue routing
    task_routes={
        "barstock.tasks.inventory.*": {"queue": "inventory"},
    },
    # Logging
    worker_hijack_root_logger=False,
)

# Configure for Windows compatibility
if os.name == "nt":
    celery_app.conf.update(
        worker_pool="solo",
    )
