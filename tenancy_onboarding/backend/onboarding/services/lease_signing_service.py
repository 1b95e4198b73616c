# backend/onboarding/services/lease_signing_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..config import settings
from ..domain.audit import audit_write
from ..domain.errors import NotFound, SignatureConflict, ValidationFailed
from ..domain.lease_signing import SignatureState, SignatureUpdate, apply_signature, ensure_signable, resolve_signer
from ..integrations.blob_store import BlobStore
from ..integrations.notifier import PipelineNotifier
from ..models import Tenancy
from .events_facade import wf

log = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class Observed:
    """What a signing attempt read; the conditional write is keyed on it."""

    tenancy: Tenancy
    raw_status: Optional[str]
    state: SignatureState


def _utcnow() -> datetime:
    return datetime.utcnow()


def _read_state(db: Session, tenancy_id: int) -> Observed:
    row = db.scalar(select(Tenancy).where(Tenancy.id == int(tenancy_id)))
    if row is None:
        raise NotFound("tenancy not found", tenancy_id=int(tenancy_id))
    return Observed(tenancy=row, raw_status=row.lease_status, state=SignatureState.from_row(row))


def _compare_and_set(db: Session, obs: Observed, upd: SignatureUpdate, *, now: datetime) -> bool:
    """
    Write the signature only if the row still looks the way it was read:
    same stored lease_status and same presence of both signatures.
    """
    conds = [Tenancy.id == obs.tenancy.id]
    if obs.raw_status is None:
        conds.append(Tenancy.lease_status.is_(None))
    else:
        conds.append(Tenancy.lease_status == obs.raw_status)
    for col, seen in (
        (Tenancy.landlord_signed_at, obs.state.landlord_signed_at),
        (Tenancy.tenant_signed_at, obs.state.tenant_signed_at),
    ):
        conds.append(col.is_(None) if seen is None else col.is_not(None))

    res = db.execute(
        update(Tenancy)
        .where(*conds)
        .values(**upd.values, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return int(res.rowcount or 0) == 1


def sign_lease(
    db: Session,
    *,
    principal: Principal,
    tenancy_id: int,
    signature_png: bytes,
    blob_store: BlobStore,
    notifier: Optional[PipelineNotifier] = None,
    now: Optional[datetime] = None,
) -> Tenancy:
    """
    Record one party's signature.

    The signature image is stored first, then the row is updated with a
    conditional write. If another signature landed in between, the state is
    re-read and the merge recomputed (settings.signature_conflict_retries
    times) before giving up with SignatureConflict. The counter-party is
    notified after commit; notification failures never fail the signing.
    """
    now = now or _utcnow()
    if not signature_png or not signature_png.startswith(PNG_MAGIC):
        raise ValidationFailed("signature must be a PNG image")

    obs = _read_state(db, tenancy_id)
    role = resolve_signer(
        landlord_id=obs.tenancy.landlord_id,
        tenant_id=obs.tenancy.tenant_id,
        user_id=principal.user_id,
    )
    ensure_signable(obs.state, role)

    path = f"{principal.user_id}/{obs.tenancy.id}/signature-{int(now.timestamp() * 1000)}.png"
    ref = blob_store.upload(path, signature_png, content_type="image/png")

    attempts = 1 + max(0, int(settings.signature_conflict_retries))
    upd: Optional[SignatureUpdate] = None
    try:
        for attempt in range(attempts):
            if attempt:
                db.expire_all()
                obs = _read_state(db, tenancy_id)
            candidate = apply_signature(obs.state, role=role, signature_ref=ref, signed_at=now)
            if _compare_and_set(db, obs, candidate, now=now):
                upd = candidate
                break
            db.rollback()
            log.warning(
                "lease signature write lost a race (attempt %d/%d)",
                attempt + 1,
                attempts,
                extra={"tenancy_id": obs.tenancy.id, "user_id": principal.user_id},
            )
        if upd is None:
            raise SignatureConflict("the lease changed while signing; try again", tenancy_id=obs.tenancy.id)
        db.commit()
    except Exception:
        db.rollback()
        blob_store.delete(ref)
        raise

    row = obs.tenancy
    db.expire(row)
    db.refresh(row)

    audit_write(
        db,
        actor_user_id=principal.user_id,
        action="lease.signed",
        entity_type="Tenancy",
        entity_id=str(row.id),
        before={"lease_status": upd.prior_status.value},
        after={"lease_status": row.lease_status, "status": row.status, "signed_by": role.value},
    )
    wf.emit(
        db,
        event_type="lease.completed" if upd.completes else "lease.signed",
        actor_user_id=principal.user_id,
        property_id=row.property_id,
        payload={"tenancy_id": row.id, "signed_by": role.value, "lease_status": row.lease_status},
    )
    db.commit()
    log.info(
        "lease signed by %s -> %s",
        role.value,
        row.lease_status,
        extra={"tenancy_id": row.id, "user_id": principal.user_id},
    )

    if notifier is not None:
        try:
            notifier.lease_signed(db, tenancy=row, signed_by=role, completed=upd.completes)
        except Exception:
            db.rollback()
            log.exception("lease signed notification failed", extra={"tenancy_id": row.id})

    return row
