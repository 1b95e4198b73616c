# backend/onboarding/services/ownership.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.errors import NotFound, Unauthorized, ValidationFailed
from ..models import AppUser, Application, Property, Tenancy, Viewing


def must_get_property(db: Session, *, property_id: int) -> Property:
    row = db.scalar(select(Property).where(Property.id == int(property_id)))
    if not row:
        raise NotFound("property not found", property_id=int(property_id))
    return row


def must_get_viewing(db: Session, *, viewing_id: int) -> Viewing:
    row = db.scalar(select(Viewing).where(Viewing.id == int(viewing_id)))
    if not row:
        raise NotFound("viewing not found", viewing_id=int(viewing_id))
    return row


def must_get_application(db: Session, *, application_id: int) -> Application:
    row = db.scalar(select(Application).where(Application.id == int(application_id)))
    if not row:
        raise NotFound("application not found", application_id=int(application_id))
    return row


def must_get_tenancy(db: Session, *, tenancy_id: int) -> Tenancy:
    row = db.scalar(select(Tenancy).where(Tenancy.id == int(tenancy_id)))
    if not row:
        raise NotFound("tenancy not found", tenancy_id=int(tenancy_id))
    return row


def require_landlord_of(row, *, user_id: int, what: str = "resource") -> None:
    if int(row.landlord_id) != int(user_id):
        raise Unauthorized(f"only the landlord may manage this {what}")


def require_party_of(row, *, user_id: int, what: str = "resource") -> None:
    uid = int(user_id)
    if uid != int(row.landlord_id) and (row.tenant_id is None or uid != int(row.tenant_id)):
        raise Unauthorized(f"not a party to this {what}")


def require_tenant_user(db: Session, *, tenant_id: int, landlord_id: int) -> None:
    """The named tenant must be a real user other than the landlord."""
    if int(tenant_id) == int(landlord_id):
        raise ValidationFailed("landlord cannot be the tenant of their own property")
    if db.get(AppUser, int(tenant_id)) is None:
        raise ValidationFailed("tenant user does not exist", tenant_id=int(tenant_id))
