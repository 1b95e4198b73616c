# backend/onboarding/routers/tenancies.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..deps import get_blob_store, get_document_generator, get_notifier
from ..integrations.blob_store import BlobStore
from ..integrations.document_generator import LeaseDocumentGenerator
from ..integrations.notifier import PipelineNotifier
from ..schemas import LeaseUploadIn, SignatureIn, TenancyClose, TenancyCreate, TenancyOut, TenantAssign
from ..services import lease_service, tenancy_service
from ..services.lease_signing_service import sign_lease

router = APIRouter(prefix="/tenancies", tags=["tenancies"])


@router.post("", response_model=TenancyOut, status_code=201)
def create_tenancy(payload: TenancyCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = tenancy_service.create_tenancy(db, principal=p, **payload.model_dump())
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[TenancyOut])
def list_tenancies(
    property_id: Optional[int] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return tenancy_service.list_tenancies(db, user_id=p.user_id, property_id=property_id, limit=limit)


@router.get("/{tenancy_id}", response_model=TenancyOut)
def get_tenancy(tenancy_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return tenancy_service.get_for_party(db, principal=p, tenancy_id=tenancy_id)


@router.post("/{tenancy_id}/tenant", response_model=TenancyOut)
def assign_tenant(tenancy_id: int, payload: TenantAssign, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = tenancy_service.assign_tenant(db, principal=p, tenancy_id=tenancy_id, tenant_id=payload.tenant_id)
    db.commit()
    db.refresh(row)
    return row


@router.post("/{tenancy_id}/end", response_model=TenancyOut)
def end_tenancy(
    tenancy_id: int,
    payload: TenancyClose | None = None,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    row = tenancy_service.end_tenancy(db, principal=p, tenancy_id=tenancy_id, notes=payload.notes if payload else None)
    db.commit()
    db.refresh(row)
    return row


@router.post("/{tenancy_id}/terminate", response_model=TenancyOut)
def terminate_tenancy(
    tenancy_id: int,
    payload: TenancyClose | None = None,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    row = tenancy_service.terminate_tenancy(
        db,
        principal=p,
        tenancy_id=tenancy_id,
        notes=payload.notes if payload else None,
    )
    db.commit()
    db.refresh(row)
    return row


# -------------------- Lease document --------------------

@router.post("/{tenancy_id}/lease/generate", response_model=TenancyOut)
def generate_lease(
    tenancy_id: int,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    generator: LeaseDocumentGenerator = Depends(get_document_generator),
):
    return lease_service.generate_lease(db, principal=p, tenancy_id=tenancy_id, generator=generator)


@router.post("/{tenancy_id}/lease/upload", response_model=TenancyOut)
def upload_lease(
    tenancy_id: int,
    payload: LeaseUploadIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    generator: LeaseDocumentGenerator = Depends(get_document_generator),
):
    return lease_service.upload_lease(
        db,
        principal=p,
        tenancy_id=tenancy_id,
        data=payload.document_pdf,
        generator=generator,
    )


@router.get("/{tenancy_id}/lease/document")
def open_lease_document(
    tenancy_id: int,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    blob_store: BlobStore = Depends(get_blob_store),
):
    ref, data = lease_service.open_document(db, principal=p, tenancy_id=tenancy_id, blob_store=blob_store)
    filename = ref.rsplit("/", 1)[-1] or "lease.pdf"
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.post("/{tenancy_id}/lease/sign", response_model=TenancyOut)
def sign(
    tenancy_id: int,
    payload: SignatureIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: PipelineNotifier = Depends(get_notifier),
):
    return sign_lease(
        db,
        principal=p,
        tenancy_id=tenancy_id,
        signature_png=payload.signature_png,
        blob_store=blob_store,
        notifier=notifier,
    )
