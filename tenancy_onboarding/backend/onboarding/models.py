# backend/onboarding/models.py
from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _loads_list(s: Optional[str]) -> list:
    if not s:
        return []
    try:
        x = json.loads(s)
        return x if isinstance(x, list) else []
    except Exception:
        return []


def _dumps(x: Any) -> str:
    return json.dumps(x, sort_keys=True, default=str)


# -----------------------------
# Identity
# -----------------------------
class AppUser(Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="tenant")  # landlord|tenant
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class WorkflowEvent(Base):
    __tablename__ = "workflow_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)
    recipient_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Listings (read-only for the pipeline)
# -----------------------------
class Property(Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    viewings: Mapped[List["Viewing"]] = relationship(back_populates="listing")
    tenancies: Mapped[List["Tenancy"]] = relationship(back_populates="listing")


# -----------------------------
# Screening
# -----------------------------
class ScreeningProfile(Base):
    __tablename__ = "screening_profiles"
    __table_args__ = (UniqueConstraint("user_id", name="uq_screening_profiles_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)

    first_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    middle_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    occupants_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    has_pets: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pet_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    income_sources_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    residences_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    screening_consent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    screening_consent_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def occupants(self) -> list:
        return _loads_list(self.occupants_json)

    @property
    def income_sources(self) -> list:
        return _loads_list(self.income_sources_json)

    @property
    def residences(self) -> list:
        return _loads_list(self.residences_json)

    def set_lists(self, *, occupants: list, income_sources: list, residences: list) -> None:
        self.occupants_json = _dumps(occupants)
        self.income_sources_json = _dumps(income_sources)
        self.residences_json = _dumps(residences)


# -----------------------------
# Viewings + applications
# -----------------------------
class Viewing(Base):
    __tablename__ = "viewings"
    __table_args__ = (Index("ix_viewings_property_tenant", "property_id", "tenant_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    conversation_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="requested")
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    viewing_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    application_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    listing: Mapped["Property"] = relationship(back_populates="viewings")


class Application(Base):
    __tablename__ = "applications"
    # Uniqueness on (property_id, tenant_id) is checked by the submission
    # service, not by the schema.
    __table_args__ = (Index("ix_applications_property_tenant", "property_id", "tenant_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    viewing_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("viewings.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Tenancy / lease
# -----------------------------
class Tenancy(Base):
    __tablename__ = "tenancies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    landlord_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=False, index=True)
    tenant_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True, index=True)

    monthly_rent: Mapped[float] = mapped_column(Float, nullable=False)
    security_deposit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # draft|awaiting_tenant_signature|awaiting_landlord_signature|completed
    # (older rows may hold generated|landlord_signed|tenant_signed|fully_signed)
    lease_status: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, default="draft")
    # draft|active|ended|terminated
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    lease_document_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    lease_document_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)  # legacy direct URL

    landlord_signature_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    landlord_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    tenant_signature_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tenant_signed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    listing: Mapped["Property"] = relationship(back_populates="tenancies")

    @property
    def document_ref(self) -> Optional[str]:
        return self.lease_document_path or self.lease_document_url

    def model_dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "property_id": self.property_id,
            "landlord_id": self.landlord_id,
            "tenant_id": self.tenant_id,
            "monthly_rent": self.monthly_rent,
            "security_deposit": self.security_deposit,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "lease_status": self.lease_status,
            "status": self.status,
            "lease_document_path": self.lease_document_path,
            "landlord_signed_at": self.landlord_signed_at,
            "tenant_signed_at": self.tenant_signed_at,
        }
