# backend/onboarding/workers/notify_tasks.py
from __future__ import annotations

import logging

from ..domain.errors import RemoteCallFailed
from ..integrations.notifier import post_webhook
from .celery_app import celery_app

log = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=10,
    name="onboarding.workers.notify_tasks.deliver_notification",
)
def deliver_notification(self, url: str, body: dict) -> dict:
    """
    Deliver one notification body to the configured webhook.

    Retries a few times, then gives up: the in-app notification row is
    already committed, so a lost webhook never blocks the pipeline.
    """
    try:
        post_webhook(url, body)
    except RemoteCallFailed as e:
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=10 * (2 ** self.request.retries))
        log.warning("notification delivery abandoned", extra={"tenancy_id": body.get("tenancy_id")})
        return {"ok": False}
    return {"ok": True}
