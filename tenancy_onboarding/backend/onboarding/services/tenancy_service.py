# backend/onboarding/services/tenancy_service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.errors import InvalidTransition, ValidationFailed
from ..domain.statuses import LeaseStatus, TenancyStatus, normalize_lease_status
from ..models import Tenancy
from .events_facade import wf
from .ownership import (
    must_get_property,
    must_get_tenancy,
    require_landlord_of,
    require_party_of,
    require_tenant_user,
)

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.utcnow()


def _record(db: Session, row: Tenancy, *, actor_user_id: int, action: str, before: Optional[dict]) -> None:
    db.add(row)
    db.flush()
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action=action,
        entity_type="Tenancy",
        entity_id=str(row.id),
        before=before,
        after=row.model_dump(),
    )
    wf.emit(
        db,
        event_type=action,
        actor_user_id=actor_user_id,
        recipient_user_id=row.tenant_id if actor_user_id == row.landlord_id else row.landlord_id,
        property_id=row.property_id,
        payload={"tenancy_id": row.id, "status": row.status, "lease_status": row.lease_status},
    )
    log.info("%s", action, extra={"tenancy_id": row.id, "user_id": actor_user_id, "property_id": row.property_id})


def get_for_party(db: Session, *, principal: Principal, tenancy_id: int) -> Tenancy:
    row = must_get_tenancy(db, tenancy_id=tenancy_id)
    require_party_of(row, user_id=principal.user_id, what="tenancy")
    return row


def list_tenancies(
    db: Session,
    *,
    user_id: int,
    property_id: Optional[int] = None,
    limit: int = 200,
) -> list[Tenancy]:
    q = select(Tenancy).where(or_(Tenancy.landlord_id == int(user_id), Tenancy.tenant_id == int(user_id)))
    if property_id is not None:
        q = q.where(Tenancy.property_id == int(property_id))
    q = q.order_by(desc(Tenancy.created_at), desc(Tenancy.id)).limit(int(limit))
    return list(db.scalars(q).all())


def _check_terms(monthly_rent: float, start_date: date, end_date: Optional[date]) -> None:
    if monthly_rent is None or float(monthly_rent) <= 0:
        raise ValidationFailed("monthly_rent must be positive")
    if end_date is not None and end_date <= start_date:
        raise ValidationFailed("end_date must be after start_date")


def create_tenancy(
    db: Session,
    *,
    principal: Principal,
    property_id: int,
    monthly_rent: float,
    start_date: date,
    end_date: Optional[date] = None,
    security_deposit: Optional[float] = None,
    tenant_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Tenancy:
    prop = must_get_property(db, property_id=property_id)
    require_landlord_of(prop, user_id=principal.user_id, what="property")
    _check_terms(monthly_rent, start_date, end_date)

    if tenant_id is not None:
        require_tenant_user(db, tenant_id=tenant_id, landlord_id=prop.landlord_id)

    row = Tenancy(
        property_id=int(prop.id),
        landlord_id=int(prop.landlord_id),
        tenant_id=int(tenant_id) if tenant_id is not None else None,
        monthly_rent=float(monthly_rent),
        security_deposit=float(security_deposit) if security_deposit is not None else None,
        start_date=start_date,
        end_date=end_date,
        lease_status=LeaseStatus.DRAFT.value,
        status=TenancyStatus.DRAFT.value,
        notes=notes,
        created_at=_utcnow(),
        updated_at=_utcnow(),
    )
    _record(db, row, actor_user_id=principal.user_id, action="tenancy.created", before=None)
    return row


def assign_tenant(db: Session, *, principal: Principal, tenancy_id: int, tenant_id: int) -> Tenancy:
    """Only while the lease is still a draft; the tenant is part of the document."""
    row = must_get_tenancy(db, tenancy_id=tenancy_id)
    require_landlord_of(row, user_id=principal.user_id, what="tenancy")

    lease = normalize_lease_status(row.lease_status)
    if lease is not LeaseStatus.DRAFT:
        raise InvalidTransition("tenant can only change while the lease is a draft", lease_status=lease.value)
    require_tenant_user(db, tenant_id=tenant_id, landlord_id=row.landlord_id)

    before = row.model_dump()
    row.tenant_id = int(tenant_id)
    row.updated_at = _utcnow()
    _record(db, row, actor_user_id=principal.user_id, action="tenancy.tenant_assigned", before=before)
    return row


def _close(db: Session, *, principal: Principal, tenancy_id: int, target: TenancyStatus, notes: Optional[str]) -> Tenancy:
    row = must_get_tenancy(db, tenancy_id=tenancy_id)
    require_landlord_of(row, user_id=principal.user_id, what="tenancy")

    if TenancyStatus(row.status) is not TenancyStatus.ACTIVE:
        raise InvalidTransition(
            f"only an active tenancy can be {target.value}",
            tenancy_id=row.id,
            status=row.status,
        )

    before = row.model_dump()
    row.status = target.value
    if target is TenancyStatus.TERMINATED or row.end_date is None or row.end_date > _utcnow().date():
        row.end_date = _utcnow().date()
    if notes:
        row.notes = notes
    row.updated_at = _utcnow()
    _record(db, row, actor_user_id=principal.user_id, action=f"tenancy.{target.value}", before=before)
    return row


def end_tenancy(db: Session, *, principal: Principal, tenancy_id: int, notes: Optional[str] = None) -> Tenancy:
    return _close(db, principal=principal, tenancy_id=tenancy_id, target=TenancyStatus.ENDED, notes=notes)


def terminate_tenancy(db: Session, *, principal: Principal, tenancy_id: int, notes: Optional[str] = None) -> Tenancy:
    return _close(db, principal=principal, tenancy_id=tenancy_id, target=TenancyStatus.TERMINATED, notes=notes)
