# backend/onboarding/services/lease_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..auth import Principal
from ..domain.audit import audit_write
from ..domain.errors import InvalidTransition, NotFound, PipelineError, RemoteCallFailed, ValidationFailed
from ..domain.statuses import LeaseStatus, normalize_lease_status
from ..integrations.blob_store import BlobStore
from ..integrations.document_generator import LeaseDocumentGenerator
from ..models import Tenancy
from .events_facade import wf
from .ownership import must_get_tenancy, require_landlord_of, require_party_of

log = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


def _utcnow() -> datetime:
    return datetime.utcnow()


def _require_draft_with_tenant(row: Tenancy) -> None:
    if row.tenant_id is None:
        raise ValidationFailed("assign a tenant before preparing the lease", tenancy_id=row.id)
    lease = normalize_lease_status(row.lease_status)
    if lease is not LeaseStatus.DRAFT:
        raise InvalidTransition(
            "lease document was already generated",
            tenancy_id=row.id,
            lease_status=lease.value,
        )


def _after_document(db: Session, row: Tenancy, *, principal: Principal, action: str) -> Tenancy:
    # the generator committed its own conditional update
    db.expire(row)
    db.refresh(row)

    audit_write(
        db,
        actor_user_id=principal.user_id,
        action=action,
        entity_type="Tenancy",
        entity_id=str(row.id),
        before={"lease_status": LeaseStatus.DRAFT.value},
        after={"lease_status": row.lease_status, "lease_document_path": row.lease_document_path},
    )
    wf.emit(
        db,
        event_type=action,
        actor_user_id=principal.user_id,
        recipient_user_id=row.tenant_id,
        property_id=row.property_id,
        payload={"tenancy_id": row.id, "lease_document_path": row.lease_document_path},
    )
    db.commit()
    log.info("%s", action, extra={"tenancy_id": row.id, "user_id": principal.user_id})
    return row


def generate_lease(
    db: Session,
    *,
    principal: Principal,
    tenancy_id: int,
    generator: LeaseDocumentGenerator,
    now: Optional[datetime] = None,
) -> Tenancy:
    """
    Landlord-only. Renders the lease for a draft tenancy and moves it to
    awaiting_tenant_signature. The generator performs the status write; this
    function only checks preconditions up front and re-reads afterwards.
    """
    row = must_get_tenancy(db, tenancy_id=tenancy_id)
    require_landlord_of(row, user_id=principal.user_id, what="tenancy")
    _require_draft_with_tenant(row)

    try:
        generator.generate(db, tenancy_id=row.id, now=now)
    except PipelineError:
        raise
    except Exception as e:
        db.rollback()
        log.exception("lease generation failed", extra={"tenancy_id": row.id})
        raise RemoteCallFailed("failed to generate lease document", tenancy_id=row.id) from e

    return _after_document(db, row, principal=principal, action="lease.generated")


def upload_lease(
    db: Session,
    *,
    principal: Principal,
    tenancy_id: int,
    data: bytes,
    generator: LeaseDocumentGenerator,
    now: Optional[datetime] = None,
) -> Tenancy:
    """Landlord supplies their own signed-off PDF instead of the generated one."""
    row = must_get_tenancy(db, tenancy_id=tenancy_id)
    require_landlord_of(row, user_id=principal.user_id, what="tenancy")
    _require_draft_with_tenant(row)

    if not data or not data.startswith(PDF_MAGIC):
        raise ValidationFailed("lease document must be a PDF", tenancy_id=row.id)

    now = now or _utcnow()
    path = f"{row.landlord_id}/{row.id}/lease-{int(now.timestamp() * 1000)}.pdf"
    generator.attach(db, tenancy_id=row.id, path=path, data=data, now=now)
    return _after_document(db, row, principal=principal, action="lease.uploaded")


def open_document(db: Session, *, principal: Principal, tenancy_id: int, blob_store: BlobStore) -> tuple[str, bytes]:
    """
    Either party may read the lease. Returns (reference, bytes); older rows
    that only hold a direct URL are fetched from that URL.
    """
    row = must_get_tenancy(db, tenancy_id=tenancy_id)
    require_party_of(row, user_id=principal.user_id, what="tenancy")

    ref = row.document_ref
    if not ref:
        raise NotFound("lease document has not been generated", tenancy_id=row.id)
    return ref, blob_store.download(ref)
