# backend/onboarding/domain/lease_signing.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from .errors import InvalidTransition, Unauthorized
from .statuses import LeaseStatus, SignerRole, TenancyStatus, normalize_lease_status

# -----------------------------------------------------------------------------
# Dual-signature merge
# -----------------------------------------------------------------------------
# Both parties sign independently and in either order. The next lease status
# is derived from which signatures exist after this write, never from the
# order of arrival:
#
#   both signed            -> completed (tenancy status -> active)
#   only landlord signed   -> awaiting_tenant_signature
#   only tenant signed     -> awaiting_landlord_signature
#
# "The other party signed" is taken from the other party's timestamp, or from
# a prior status of awaiting_<me>_signature, which is only ever written after
# the other party signed (rows migrated from older flows may lack the stamp).
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SignatureState:
    lease_status: LeaseStatus
    landlord_signed_at: Optional[datetime] = None
    tenant_signed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "SignatureState":
        return cls(
            lease_status=normalize_lease_status(row.lease_status),
            landlord_signed_at=row.landlord_signed_at,
            tenant_signed_at=row.tenant_signed_at,
        )


@dataclass(frozen=True)
class SignatureUpdate:
    role: SignerRole
    prior_status: LeaseStatus
    lease_status: LeaseStatus
    values: dict[str, Any]

    @property
    def completes(self) -> bool:
        return self.lease_status is LeaseStatus.COMPLETED


def resolve_signer(*, landlord_id: int, tenant_id: Optional[int], user_id: int) -> SignerRole:
    if int(user_id) == int(landlord_id):
        return SignerRole.LANDLORD
    if tenant_id is not None and int(user_id) == int(tenant_id):
        return SignerRole.TENANT
    raise Unauthorized("You are not authorized to sign this lease")


def ensure_signable(state: SignatureState, role: Optional[SignerRole] = None) -> LeaseStatus:
    prior = state.lease_status
    if prior is LeaseStatus.DRAFT:
        raise InvalidTransition("lease document has not been generated yet", lease_status=prior.value)
    if prior.is_terminal:
        raise InvalidTransition("lease is already fully executed", lease_status=prior.value)
    if role is not None:
        own = state.landlord_signed_at if role is SignerRole.LANDLORD else state.tenant_signed_at
        if own is not None:
            raise InvalidTransition(
                "you have already signed this lease", lease_status=prior.value, signed_by=role.value
            )
    return prior


def _other_party_signed(state: SignatureState, role: SignerRole) -> bool:
    if role is SignerRole.LANDLORD:
        return state.tenant_signed_at is not None or state.lease_status is LeaseStatus.AWAITING_LANDLORD_SIGNATURE
    return state.landlord_signed_at is not None


def apply_signature(
    state: SignatureState,
    *,
    role: SignerRole,
    signature_ref: str,
    signed_at: datetime,
) -> SignatureUpdate:
    """
    Compute the row update for one signature.

    Raises InvalidTransition for a lease with no document yet (draft), for a
    party who has already signed, and for an already completed lease, so a
    late extra signature cannot move the row.
    """
    prior = ensure_signable(state, role)
    if not (signature_ref or "").strip():
        raise InvalidTransition("signature reference is required")

    values: dict[str, Any] = {}
    if role is SignerRole.LANDLORD:
        values["landlord_signature_url"] = signature_ref
        values["landlord_signed_at"] = signed_at
    else:
        values["tenant_signature_url"] = signature_ref
        values["tenant_signed_at"] = signed_at

    if _other_party_signed(state, role):
        nxt = LeaseStatus.COMPLETED
        values["status"] = TenancyStatus.ACTIVE.value
    elif role is SignerRole.LANDLORD:
        nxt = LeaseStatus.AWAITING_TENANT_SIGNATURE
    else:
        nxt = LeaseStatus.AWAITING_LANDLORD_SIGNATURE

    values["lease_status"] = nxt.value
    return SignatureUpdate(role=role, prior_status=prior, lease_status=nxt, values=values)
