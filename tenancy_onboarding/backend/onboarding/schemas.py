# backend/onboarding/schemas.py
from __future__ import annotations

import base64
import binascii
from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain.statuses import normalize_lease_status


# -------------------- Listings --------------------

class PropertyCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class PropertyOut(PropertyCreate):
    id: int
    landlord_id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Screening --------------------

class OccupantIn(BaseModel):
    name: str
    relationship: str


class IncomeSourceIn(BaseModel):
    type: str
    monthly_income: float = Field(ge=0)
    employer: str
    started_on: Optional[date] = None
    job_title: Optional[str] = None
    employer_contact_name: Optional[str] = None
    employer_contact_email: Optional[str] = None
    employer_contact_phone: Optional[str] = None
    documents: List[str] = Field(default_factory=list)


class ResidenceIn(BaseModel):
    type: str
    street: str
    city: str
    province: str
    postcode: str
    moved_in: Optional[date] = None
    monthly_rent: float = Field(default=0.0, ge=0)
    reason_for_moving: Optional[str] = None
    landlord_name: Optional[str] = None
    landlord_email: Optional[str] = None
    landlord_phone: Optional[str] = None


class ScreeningProfileIn(BaseModel):
    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    occupants: List[OccupantIn] = Field(default_factory=list)
    has_pets: bool = False
    pet_details: Optional[str] = None
    income_sources: List[IncomeSourceIn] = Field(default_factory=list)
    residences: List[ResidenceIn] = Field(default_factory=list)
    screening_consent: bool = False


class ScreeningProfileOut(ScreeningProfileIn):
    user_id: int
    exists: bool
    is_complete: bool
    screening_consent_date: Optional[datetime] = None
    failing_sections: List[str] = Field(default_factory=list)


# -------------------- Viewings --------------------

class ViewingCreate(BaseModel):
    property_id: int
    tenant_id: Optional[int] = None
    conversation_id: Optional[str] = None
    notes: Optional[str] = None


class ViewingSchedule(BaseModel):
    scheduled_date: datetime


class ViewingComplete(BaseModel):
    notes: Optional[str] = None


class ViewingOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    landlord_id: int
    conversation_id: Optional[str] = None
    status: str
    scheduled_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    viewing_confirmed: bool
    application_sent: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AccessStateOut(BaseModel):
    property_id: int
    tenant_id: int
    allowed: bool
    reason: str
    viewing_id: Optional[int] = None


# -------------------- Applications --------------------

class ApplicationSubmit(BaseModel):
    property_id: int


class ApplicationInvite(BaseModel):
    property_id: int
    tenant_id: int


class ApplicationDecision(BaseModel):
    decision: Literal["accepted", "declined"]


class ApplicationOut(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    landlord_id: int
    viewing_id: Optional[int] = None
    status: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Tenancies / leases --------------------

class TenancyCreate(BaseModel):
    property_id: int
    monthly_rent: float = Field(gt=0)
    start_date: date
    end_date: Optional[date] = None
    security_deposit: Optional[float] = Field(default=None, ge=0)
    tenant_id: Optional[int] = None
    notes: Optional[str] = None


class TenantAssign(BaseModel):
    tenant_id: int


class TenancyClose(BaseModel):
    notes: Optional[str] = None


def _b64_bytes(v: Any) -> bytes:
    """Decode a base64 body field; a data: URL prefix is accepted."""
    s = str(v or "").strip()
    if s.startswith("data:") and "," in s:
        s = s.split(",", 1)[1]
    try:
        raw = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("payload must be base64") from e
    if not raw:
        raise ValueError("payload is empty")
    return raw


class SignatureIn(BaseModel):
    """Signature image as base64 PNG."""

    signature_png: bytes

    @field_validator("signature_png", mode="before")
    @classmethod
    def decode_png(cls, v: Any) -> bytes:
        return _b64_bytes(v)


class LeaseUploadIn(BaseModel):
    document_pdf: bytes

    @field_validator("document_pdf", mode="before")
    @classmethod
    def decode_pdf(cls, v: Any) -> bytes:
        return _b64_bytes(v)


class TenancyOut(BaseModel):
    id: int
    property_id: int
    landlord_id: int
    tenant_id: Optional[int] = None
    monthly_rent: float
    security_deposit: Optional[float] = None
    start_date: date
    end_date: Optional[date] = None
    lease_status: str
    status: str
    lease_document_path: Optional[str] = None
    landlord_signed_at: Optional[datetime] = None
    tenant_signed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)

    @field_validator("lease_status", mode="before")
    @classmethod
    def canonical_lease_status(cls, v: Any) -> str:
        return normalize_lease_status(v).value


# -------------------- Workflow events --------------------

class WorkflowEventOut(BaseModel):
    id: int
    property_id: Optional[int] = None
    actor_user_id: Optional[int] = None
    recipient_user_id: Optional[int] = None
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
