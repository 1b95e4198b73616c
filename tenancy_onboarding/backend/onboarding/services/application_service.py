# backend/onboarding/services/application_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.errors import (
    AlreadyApplied,
    ApplicationBlocked,
    InvalidTransition,
    NotAuthenticated,
    ValidationFailed,
)
from ..domain.screening import failing_sections
from ..domain.statuses import ApplicationStatus
from ..models import Application
from . import screening_service
from .events_facade import wf
from .ownership import must_get_application, must_get_property, require_landlord_of, require_tenant_user
from .viewing_service import access_state

log = logging.getLogger(__name__)

DECIDABLE = {ApplicationStatus.PENDING, ApplicationStatus.INVITED, ApplicationStatus.SUBMITTED}


@dataclass(frozen=True)
class SubmissionResult:
    application: Application
    created: bool  # False when an invite row was upgraded


def _utcnow() -> datetime:
    return datetime.utcnow()


def _after(row: Application) -> dict:
    return {"status": row.status, "property_id": row.property_id, "tenant_id": row.tenant_id}


def find_application(db: Session, *, property_id: int, tenant_id: int) -> Optional[Application]:
    q = (
        select(Application)
        .where(Application.property_id == int(property_id), Application.tenant_id == int(tenant_id))
        .order_by(desc(Application.id))
        .limit(1)
    )
    return db.scalar(q)


def list_applications(
    db: Session,
    *,
    user_id: int,
    property_id: Optional[int] = None,
    status: Optional[ApplicationStatus] = None,
    limit: int = 200,
) -> list[Application]:
    q = select(Application).where(
        or_(Application.landlord_id == int(user_id), Application.tenant_id == int(user_id))
    )
    if property_id is not None:
        q = q.where(Application.property_id == int(property_id))
    if status is not None:
        q = q.where(Application.status == status.value)
    q = q.order_by(desc(Application.created_at), desc(Application.id)).limit(int(limit))
    return list(db.scalars(q).all())


def submit_application(db: Session, *, principal: Optional[Principal], property_id: int) -> SubmissionResult:
    """
    Preconditions, each a hard stop and checked before anything is written:
      1) caller is authenticated
      2) no existing application for (property, tenant), unless it is an invite
      3) access gate is open
      4) screening profile validates

    Then the profile is marked complete and the application row written.
    The existence check is a query, not a constraint: two truly concurrent
    submissions can both pass it.
    """
    if principal is None:
        raise NotAuthenticated("sign in to apply")

    tenant_id = int(principal.user_id)
    prop = must_get_property(db, property_id=property_id)

    existing = find_application(db, property_id=prop.id, tenant_id=tenant_id)
    if existing is not None and ApplicationStatus(existing.status) is not ApplicationStatus.INVITED:
        log.info(
            "duplicate application short-circuited",
            extra={"user_id": tenant_id, "property_id": prop.id, "application_id": existing.id},
        )
        raise AlreadyApplied(
            "You have already submitted an application for this property.",
            application_id=existing.id,
        )

    decision = access_state(db, property_id=prop.id, tenant_id=tenant_id)
    if not decision.allowed:
        raise ApplicationBlocked(decision.reason.value)

    state = screening_service.load_or_create(db, user_id=tenant_id)
    bad = failing_sections(state.profile)
    if not state.exists or bad:
        raise ValidationFailed(
            "screening profile is incomplete",
            sections=[s.value for s in bad] or ["personal"],
        )

    profile_row = screening_service.get_profile_row(db, user_id=tenant_id)
    screening_service.mark_complete(db, row=profile_row, consent=state.profile.screening_consent)

    if existing is not None:
        before = _after(existing)
        existing.status = ApplicationStatus.SUBMITTED.value
        existing.viewing_id = existing.viewing_id or decision.viewing_id
        existing.updated_at = _utcnow()
        row, created, action = existing, False, "application.submitted"
    else:
        before = None
        row = Application(
            property_id=int(prop.id),
            tenant_id=tenant_id,
            landlord_id=int(prop.landlord_id),
            viewing_id=decision.viewing_id,
            status=ApplicationStatus.PENDING.value,
            created_at=_utcnow(),
            updated_at=_utcnow(),
        )
        created, action = True, "application.created"

    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=tenant_id,
        action=action,
        entity_type="Application",
        entity_id=str(row.id),
        before=before,
        after=_after(row),
    )
    wf.emit(
        db,
        event_type=action,
        actor_user_id=tenant_id,
        recipient_user_id=int(prop.landlord_id),
        property_id=prop.id,
        payload={"application_id": row.id},
    )
    log.info("application submitted", extra={"user_id": tenant_id, "property_id": prop.id, "application_id": row.id})
    return SubmissionResult(application=row, created=created)


def invite_applicant(db: Session, *, principal: Principal, property_id: int, tenant_id: int) -> Application:
    prop = must_get_property(db, property_id=property_id)
    require_landlord_of(prop, user_id=principal.user_id, what="property")
    require_tenant_user(db, tenant_id=tenant_id, landlord_id=prop.landlord_id)

    existing = find_application(db, property_id=prop.id, tenant_id=tenant_id)
    if existing is not None:
        raise AlreadyApplied("tenant already has an application for this property", application_id=existing.id)

    row = Application(
        property_id=int(prop.id),
        tenant_id=int(tenant_id),
        landlord_id=int(prop.landlord_id),
        status=ApplicationStatus.INVITED.value,
        created_at=_utcnow(),
        updated_at=_utcnow(),
    )
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=principal.user_id,
        action="application.invited",
        entity_type="Application",
        entity_id=str(row.id),
        after=_after(row),
    )
    wf.emit(
        db,
        event_type="application.invited",
        actor_user_id=principal.user_id,
        recipient_user_id=int(tenant_id),
        property_id=prop.id,
        payload={"application_id": row.id},
    )
    return row


def decide_application(
    db: Session,
    *,
    principal: Principal,
    application_id: int,
    decision: ApplicationStatus,
) -> Application:
    if decision not in (ApplicationStatus.ACCEPTED, ApplicationStatus.DECLINED):
        raise ValidationFailed("decision must be accepted or declined")

    row = must_get_application(db, application_id=application_id)
    require_landlord_of(row, user_id=principal.user_id, what="application")

    current = ApplicationStatus(row.status)
    if current not in DECIDABLE:
        raise InvalidTransition(
            f"application is already {current.value}",
            application_id=row.id,
            status=current.value,
        )

    before = _after(row)
    row.status = decision.value
    row.updated_at = _utcnow()
    db.add(row)
    db.flush()

    audit_write(
        db,
        actor_user_id=principal.user_id,
        action=f"application.{decision.value}",
        entity_type="Application",
        entity_id=str(row.id),
        before=before,
        after=_after(row),
    )
    wf.emit(
        db,
        event_type=f"application.{decision.value}",
        actor_user_id=principal.user_id,
        recipient_user_id=row.tenant_id,
        property_id=row.property_id,
        payload={"application_id": row.id},
    )
    return row
