# backend/onboarding/integrations/notifier.py
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.errors import RemoteCallFailed
from ..domain.statuses import SignerRole
from ..models import AppUser, Property, Tenancy, Viewing
from ..services.events_facade import wf

log = logging.getLogger(__name__)

# viewing audit action -> (notification title, message template)
VIEWING_MESSAGES: dict[str, tuple[str, str]] = {
    "viewing.requested": ("New Viewing Booked", "{actor} has booked a viewing for {title} ({location})."),
    "viewing.scheduled": ("Viewing Scheduled", "{actor} has scheduled the viewing for {title} on {when}."),
    "viewing.completed": ("Viewing Completed", "The viewing for {title} has been marked as completed by {actor}."),
    "viewing.cancelled": ("Viewing Cancelled", "{actor} has cancelled the viewing for {title}."),
}


def post_webhook(url: str, body: dict[str, Any], *, timeout: Optional[float] = None) -> None:
    try:
        with httpx.Client(timeout=timeout or settings.notify_timeout_seconds) as client:
            r = client.post(url, json=body)
            r.raise_for_status()
    except httpx.HTTPError as e:
        raise RemoteCallFailed("notification webhook failed", url=url) from e


def _display_name(db: Session, user_id: Optional[int], fallback: str) -> str:
    user = db.get(AppUser, user_id) if user_id is not None else None
    if user is None:
        return fallback
    return user.display_name or user.email


class PipelineNotifier:
    """
    Tells the other party about lease signatures and viewing changes.

    The in-app notification is a workflow event addressed to the recipient.
    When a webhook is configured the same body is POSTed there, inline or
    through the worker queue. Callers treat every failure as best-effort.
    """

    def __init__(self, webhook_url: Optional[str] = None, *, use_queue: Optional[bool] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.notify_webhook_url
        self.use_queue = settings.notify_via_queue if use_queue is None else bool(use_queue)

    def lease_signed(self, db: Session, *, tenancy: Tenancy, signed_by: SignerRole, completed: bool) -> dict[str, Any]:
        if signed_by is SignerRole.TENANT:
            recipient_id = tenancy.landlord_id
            signer_id = tenancy.tenant_id
            title = "Tenant Signed Lease Agreement"
        else:
            recipient_id = tenancy.tenant_id
            signer_id = tenancy.landlord_id
            title = "Landlord Signed Lease Agreement"

        signer_name = _display_name(db, signer_id, "The other party")
        prop = db.get(Property, tenancy.property_id)
        prop_title = prop.title if prop is not None else "the property"
        tail = "The lease is now fully executed." if completed else "It is now awaiting your signature."

        body = {
            "recipient_user_id": recipient_id,
            "title": title,
            "message": f"{signer_name} has signed the lease agreement for {prop_title}. {tail}",
            "tenancy_id": tenancy.id,
            "property_id": tenancy.property_id,
            "signed_by": signed_by.value,
        }
        self._send(
            db,
            event_type="notification.lease_signed",
            actor_user_id=signer_id,
            body=body,
            extra={"tenancy_id": tenancy.id, "user_id": recipient_id},
        )
        return body

    def viewing_changed(self, db: Session, *, viewing: Viewing, action: str, actor_user_id: int) -> dict[str, Any]:
        """Notify whichever party did not make the change."""
        if action not in VIEWING_MESSAGES:
            raise ValueError(f"no viewing notification for {action!r}")
        title, template = VIEWING_MESSAGES[action]

        actor = int(actor_user_id)
        recipient_id = viewing.tenant_id if actor == int(viewing.landlord_id) else viewing.landlord_id
        fallback = "The landlord" if actor == int(viewing.landlord_id) else "The tenant"
        prop = db.get(Property, viewing.property_id)
        prop_title = prop.title if prop is not None else "Property"
        when = viewing.scheduled_date.strftime("%A %d %B %Y, %H:%M") if viewing.scheduled_date else "(time TBD)"

        message = template.format(
            actor=_display_name(db, actor, fallback),
            title=prop_title,
            location=prop.location if prop is not None else "N/A",
            when=when,
        )
        body = {
            "recipient_user_id": recipient_id,
            "title": f"{title}: {prop_title}",
            "message": message,
            "viewing_id": viewing.id,
            "property_id": viewing.property_id,
            "action": action,
        }
        self._send(
            db,
            event_type="notification.viewing",
            actor_user_id=actor,
            body=body,
            extra={"viewing_id": viewing.id, "user_id": recipient_id},
        )
        return body

    def _send(
        self,
        db: Session,
        *,
        event_type: str,
        actor_user_id: Optional[int],
        body: dict[str, Any],
        extra: dict[str, Any],
    ) -> None:
        wf.emit(
            db,
            event_type=event_type,
            actor_user_id=actor_user_id,
            recipient_user_id=body["recipient_user_id"],
            property_id=body["property_id"],
            payload=body,
        )
        db.commit()
        log.info("%s recorded", event_type, extra=extra)

        if not self.webhook_url:
            return
        if self.use_queue:
            from ..workers.notify_tasks import deliver_notification

            deliver_notification.delay(self.webhook_url, body)
        else:
            post_webhook(self.webhook_url, body)
