# backend/onboarding/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from onboarding.auth import issue_token
from onboarding.db import SessionLocal
from onboarding.models import AppUser, Property


@dataclass(frozen=True)
class SeedResult:
    landlord_email: str
    tenant_email: str
    property_id: int
    landlord_token: str
    tenant_token: str


def _get_or_create_user(db: Session, email: str, display_name: str, role: str) -> AppUser:
    row = db.query(AppUser).filter(AppUser.email == email).one_or_none()
    if row:
        return row
    row = AppUser(email=email, display_name=display_name, role=role, created_at=datetime.utcnow())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _get_or_create_property(db: Session, landlord_id: int, title: str, location: str) -> Property:
    row = (
        db.query(Property)
        .filter(Property.landlord_id == int(landlord_id), Property.title == title)
        .one_or_none()
    )
    if row:
        return row
    row = Property(
        landlord_id=int(landlord_id),
        title=title,
        location=location,
        description="Two bedroom flat, close to transit.",
        created_at=datetime.utcnow(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def seed_demo(
    *,
    landlord_email: str,
    tenant_email: str,
    property_title: str = "Demo Flat",
    property_location: str = "12 Harbour Street",
) -> SeedResult:
    """Idempotent: re-running returns the same users and property with fresh tokens."""
    db = SessionLocal()
    try:
        landlord = _get_or_create_user(db, landlord_email, landlord_email.split("@")[0], "landlord")
        tenant = _get_or_create_user(db, tenant_email, tenant_email.split("@")[0], "tenant")
        prop = _get_or_create_property(db, landlord.id, property_title, property_location)
        return SeedResult(
            landlord_email=landlord.email,
            tenant_email=tenant.email,
            property_id=int(prop.id),
            landlord_token=issue_token(landlord.id),
            tenant_token=issue_token(tenant.id),
        )
    finally:
        db.close()
