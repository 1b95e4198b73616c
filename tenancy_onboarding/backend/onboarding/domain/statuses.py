# backend/onboarding/domain/statuses.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class ViewingStatus(str, Enum):
    REQUESTED = "requested"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ViewingStatus.COMPLETED, ViewingStatus.CANCELLED)


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    INVITED = "invited"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in (ApplicationStatus.ACCEPTED, ApplicationStatus.DECLINED)


class LeaseStatus(str, Enum):
    DRAFT = "draft"
    AWAITING_TENANT_SIGNATURE = "awaiting_tenant_signature"
    AWAITING_LANDLORD_SIGNATURE = "awaiting_landlord_signature"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is LeaseStatus.COMPLETED


class TenancyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ENDED = "ended"
    TERMINATED = "terminated"


class SignerRole(str, Enum):
    LANDLORD = "landlord"
    TENANT = "tenant"


# Older rows carry labels written by earlier lease flows.
LEASE_STATUS_SYNONYMS: dict[str, LeaseStatus] = {
    "generated": LeaseStatus.AWAITING_TENANT_SIGNATURE,
    "landlord_signed": LeaseStatus.AWAITING_TENANT_SIGNATURE,
    "tenant_signed": LeaseStatus.AWAITING_LANDLORD_SIGNATURE,
    "fully_signed": LeaseStatus.COMPLETED,
}


def normalize_lease_status(raw: Optional[str]) -> LeaseStatus:
    """
    Map a stored lease_status literal onto the canonical enum.

    NULL is treated as draft (tenancies created before lease tracking).
    Unknown literals raise ValueError rather than guessing.
    """
    if raw is None:
        return LeaseStatus.DRAFT
    s = str(raw).strip().lower()
    if not s:
        return LeaseStatus.DRAFT
    if s in LEASE_STATUS_SYNONYMS:
        return LEASE_STATUS_SYNONYMS[s]
    return LeaseStatus(s)
