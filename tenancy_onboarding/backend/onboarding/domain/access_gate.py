# backend/onboarding/domain/access_gate.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .statuses import ViewingStatus

# -----------------------------------------------------------------------------
# Application access gate
# -----------------------------------------------------------------------------
# Pure decision over one viewing snapshot. Nothing here is persisted; the
# viewing service builds a snapshot from the authoritative (most recent,
# non-cancelled) viewing and asks this module every time.
#
# Rows are evaluated top-down. The status checks come first so that a stray
# viewing_confirmed / application_sent flag on a non-completed viewing never
# opens the gate.
# -----------------------------------------------------------------------------


class AccessReason(str, Enum):
    NO_VIEWING = "no-viewing"
    VIEWING_REQUESTED = "viewing-requested"
    VIEWING_SCHEDULED = "viewing-scheduled"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    AWAITING_APPLICATION = "awaiting-application"
    ALLOWED = "allowed"


@dataclass(frozen=True)
class ViewingSnapshot:
    status: ViewingStatus
    viewing_confirmed: bool = False
    application_sent: bool = False
    viewing_id: Optional[int] = None

    @classmethod
    def from_row(cls, row) -> "ViewingSnapshot":
        return cls(
            status=ViewingStatus(row.status),
            viewing_confirmed=bool(row.viewing_confirmed),
            application_sent=bool(row.application_sent),
            viewing_id=int(row.id) if getattr(row, "id", None) is not None else None,
        )


@dataclass(frozen=True)
class AccessDecision:
    reason: AccessReason
    viewing_id: Optional[int] = None

    @property
    def allowed(self) -> bool:
        return self.reason is AccessReason.ALLOWED

    def as_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason.value,
            "viewing_id": self.viewing_id,
        }


def evaluate_access(snapshot: Optional[ViewingSnapshot]) -> AccessDecision:
    if snapshot is None or snapshot.status is ViewingStatus.CANCELLED:
        return AccessDecision(AccessReason.NO_VIEWING)

    vid = snapshot.viewing_id

    if snapshot.status is ViewingStatus.REQUESTED:
        return AccessDecision(AccessReason.VIEWING_REQUESTED, vid)

    if snapshot.status is ViewingStatus.SCHEDULED:
        return AccessDecision(AccessReason.VIEWING_SCHEDULED, vid)

    # completed
    if not snapshot.viewing_confirmed:
        return AccessDecision(AccessReason.AWAITING_CONFIRMATION, vid)

    if not snapshot.application_sent:
        return AccessDecision(AccessReason.AWAITING_APPLICATION, vid)

    return AccessDecision(AccessReason.ALLOWED, vid)
