# backend/onboarding/services/viewing_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.access_gate import AccessDecision, ViewingSnapshot, evaluate_access
from ..domain.audit import audit_write
from ..domain.errors import InvalidTransition, Unauthorized, ValidationFailed
from ..domain.statuses import ViewingStatus
from ..integrations.notifier import PipelineNotifier
from ..models import Viewing
from .events_facade import wf
from .ownership import must_get_property, must_get_viewing, require_landlord_of, require_tenant_user

log = logging.getLogger(__name__)

# requested -> scheduled -> completed; cancelled from requested|scheduled.
# completed and cancelled are terminal.
TRANSITIONS: dict[ViewingStatus, set[ViewingStatus]] = {
    ViewingStatus.REQUESTED: {ViewingStatus.SCHEDULED, ViewingStatus.CANCELLED},
    ViewingStatus.SCHEDULED: {ViewingStatus.COMPLETED, ViewingStatus.CANCELLED},
    ViewingStatus.COMPLETED: set(),
    ViewingStatus.CANCELLED: set(),
}


def _utcnow() -> datetime:
    return datetime.utcnow()


def _snapshot(row: Viewing) -> dict:
    return {
        "status": row.status,
        "scheduled_date": row.scheduled_date,
        "completed_at": row.completed_at,
        "viewing_confirmed": bool(row.viewing_confirmed),
        "application_sent": bool(row.application_sent),
    }


def _transition(db: Session, row: Viewing, target: ViewingStatus, *, actor_user_id: int) -> None:
    current = ViewingStatus(row.status)
    if target not in TRANSITIONS[current]:
        log.warning(
            "viewing transition rejected %s -> %s",
            current.value,
            target.value,
            extra={"viewing_id": row.id, "user_id": actor_user_id},
        )
        raise InvalidTransition(
            f"cannot move viewing from {current.value} to {target.value}",
            viewing_id=row.id,
            status=current.value,
        )
    row.status = target.value
    row.updated_at = _utcnow()


def _record(db: Session, row: Viewing, *, actor_user_id: int, action: str, before: Optional[dict]) -> None:
    db.add(row)
    db.flush()
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action=action,
        entity_type="Viewing",
        entity_id=str(row.id),
        before=before,
        after=_snapshot(row),
    )
    wf.emit(
        db,
        event_type=action,
        actor_user_id=actor_user_id,
        property_id=row.property_id,
        payload={"viewing_id": row.id, "tenant_id": row.tenant_id, "status": row.status},
    )
    log.info("%s", action, extra={"viewing_id": row.id, "user_id": actor_user_id, "property_id": row.property_id})


# -----------------------------------------------------------------------------
# Queries
# -----------------------------------------------------------------------------
def latest_viewing(db: Session, *, property_id: int, tenant_id: int) -> Optional[Viewing]:
    """
    The authoritative viewing for (property, tenant): the most recent
    non-cancelled one. Uniqueness is not enforced by the store.
    """
    q = (
        select(Viewing)
        .where(
            Viewing.property_id == int(property_id),
            Viewing.tenant_id == int(tenant_id),
            Viewing.status != ViewingStatus.CANCELLED.value,
        )
        .order_by(desc(Viewing.created_at), desc(Viewing.id))
        .limit(1)
    )
    return db.scalar(q)


def list_viewings(
    db: Session,
    *,
    user_id: int,
    property_id: Optional[int] = None,
    conversation_id: Optional[str] = None,
    limit: int = 200,
) -> list[Viewing]:
    q = select(Viewing).where(or_(Viewing.landlord_id == int(user_id), Viewing.tenant_id == int(user_id)))
    if property_id is not None:
        q = q.where(Viewing.property_id == int(property_id))
    if conversation_id:
        q = q.where(Viewing.conversation_id == str(conversation_id))
    q = q.order_by(desc(Viewing.created_at), desc(Viewing.id)).limit(int(limit))
    return list(db.scalars(q).all())


def access_state(db: Session, *, property_id: int, tenant_id: int) -> AccessDecision:
    row = latest_viewing(db, property_id=property_id, tenant_id=tenant_id)
    return evaluate_access(ViewingSnapshot.from_row(row) if row is not None else None)


# -----------------------------------------------------------------------------
# Mutations
# -----------------------------------------------------------------------------
def create_viewing(
    db: Session,
    *,
    principal: Principal,
    property_id: int,
    tenant_id: Optional[int] = None,
    conversation_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Viewing:
    """
    Either party may request a viewing. The landlord is taken from the
    property; a landlord creating one must name an existing tenant user.
    The date is set later by schedule_viewing().
    """
    prop = must_get_property(db, property_id=property_id)
    caller = int(principal.user_id)

    if caller == int(prop.landlord_id):
        if tenant_id is None:
            raise ValidationFailed("tenant_id is required when the landlord creates a viewing")
        require_tenant_user(db, tenant_id=tenant_id, landlord_id=prop.landlord_id)
        tid = int(tenant_id)
    else:
        if tenant_id is not None and int(tenant_id) != caller:
            raise Unauthorized("tenants may only request viewings for themselves")
        tid = caller

    if tid == int(prop.landlord_id):
        raise ValidationFailed("landlord cannot view their own property")

    existing = latest_viewing(db, property_id=prop.id, tenant_id=tid)
    if existing is not None:
        raise InvalidTransition(
            "a viewing already exists for this property",
            viewing_id=existing.id,
            status=existing.status,
        )

    row = Viewing(
        property_id=int(prop.id),
        tenant_id=tid,
        landlord_id=int(prop.landlord_id),
        conversation_id=conversation_id,
        notes=notes,
        status=ViewingStatus.REQUESTED.value,
        created_at=_utcnow(),
        updated_at=_utcnow(),
    )
    _record(db, row, actor_user_id=caller, action="viewing.requested", before=None)
    return row


def schedule_viewing(
    db: Session,
    *,
    principal: Principal,
    viewing_id: int,
    scheduled_date: Optional[datetime],
) -> Viewing:
    row = must_get_viewing(db, viewing_id=viewing_id)
    require_landlord_of(row, user_id=principal.user_id, what="viewing")
    if scheduled_date is None:
        raise ValidationFailed("scheduled_date is required", viewing_id=row.id)

    before = _snapshot(row)
    _transition(db, row, ViewingStatus.SCHEDULED, actor_user_id=principal.user_id)
    row.scheduled_date = scheduled_date
    _record(db, row, actor_user_id=principal.user_id, action="viewing.scheduled", before=before)
    return row


def complete_viewing(
    db: Session,
    *,
    principal: Principal,
    viewing_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Viewing:
    """
    Completion does not confirm the viewing; the landlord confirms separately
    before the application gate can open.
    """
    row = must_get_viewing(db, viewing_id=viewing_id)
    require_landlord_of(row, user_id=principal.user_id, what="viewing")

    before = _snapshot(row)
    _transition(db, row, ViewingStatus.COMPLETED, actor_user_id=principal.user_id)
    row.completed_at = now or _utcnow()
    if notes is not None:
        row.notes = notes
    _record(db, row, actor_user_id=principal.user_id, action="viewing.completed", before=before)
    return row


def cancel_viewing(db: Session, *, principal: Principal, viewing_id: int) -> Viewing:
    row = must_get_viewing(db, viewing_id=viewing_id)
    require_landlord_of(row, user_id=principal.user_id, what="viewing")

    before = _snapshot(row)
    _transition(db, row, ViewingStatus.CANCELLED, actor_user_id=principal.user_id)
    _record(db, row, actor_user_id=principal.user_id, action="viewing.cancelled", before=before)
    return row


def confirm_viewing(db: Session, *, principal: Principal, viewing_id: int) -> Viewing:
    row = must_get_viewing(db, viewing_id=viewing_id)
    require_landlord_of(row, user_id=principal.user_id, what="viewing")
    if ViewingStatus(row.status) is not ViewingStatus.COMPLETED:
        raise InvalidTransition("only a completed viewing can be confirmed", viewing_id=row.id, status=row.status)
    if row.viewing_confirmed:
        return row

    before = _snapshot(row)
    row.viewing_confirmed = True
    row.updated_at = _utcnow()
    _record(db, row, actor_user_id=principal.user_id, action="viewing.confirmed", before=before)
    return row


def send_application(db: Session, *, principal: Principal, viewing_id: int) -> Viewing:
    row = must_get_viewing(db, viewing_id=viewing_id)
    require_landlord_of(row, user_id=principal.user_id, what="viewing")
    if not row.viewing_confirmed:
        raise InvalidTransition("confirm the viewing before sending the application", viewing_id=row.id)
    if row.application_sent:
        return row

    before = _snapshot(row)
    row.application_sent = True
    row.updated_at = _utcnow()
    _record(db, row, actor_user_id=principal.user_id, action="viewing.application_sent", before=before)
    return row


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------
def notify_change(
    db: Session,
    *,
    notifier: Optional[PipelineNotifier],
    viewing: Viewing,
    action: str,
    actor_user_id: int,
) -> None:
    """
    Tell the other party about a committed viewing change. Best-effort: a
    failure is logged and never undoes the change.
    """
    if notifier is None:
        return
    try:
        notifier.viewing_changed(db, viewing=viewing, action=action, actor_user_id=actor_user_id)
    except Exception:
        db.rollback()
        log.exception("viewing notification failed", extra={"viewing_id": viewing.id, "user_id": actor_user_id})
