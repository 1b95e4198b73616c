# backend/onboarding/routers/applications.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.statuses import ApplicationStatus
from ..schemas import ApplicationDecision, ApplicationInvite, ApplicationOut, ApplicationSubmit
from ..services import application_service
from ..services.ownership import must_get_application, require_party_of

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post("", response_model=ApplicationOut, status_code=201)
def submit_application(
    payload: ApplicationSubmit,
    response: Response,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    result = application_service.submit_application(db, principal=p, property_id=payload.property_id)
    db.commit()
    db.refresh(result.application)
    if not result.created:
        response.status_code = 200
    return result.application


@router.post("/invite", response_model=ApplicationOut, status_code=201)
def invite_applicant(payload: ApplicationInvite, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = application_service.invite_applicant(
        db,
        principal=p,
        property_id=payload.property_id,
        tenant_id=payload.tenant_id,
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[ApplicationOut])
def list_applications(
    property_id: Optional[int] = Query(default=None),
    status: Optional[ApplicationStatus] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return application_service.list_applications(
        db,
        user_id=p.user_id,
        property_id=property_id,
        status=status,
        limit=limit,
    )


@router.get("/{application_id}", response_model=ApplicationOut)
def get_application(application_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_application(db, application_id=application_id)
    require_party_of(row, user_id=p.user_id, what="application")
    return row


@router.post("/{application_id}/decision", response_model=ApplicationOut)
def decide_application(
    application_id: int,
    payload: ApplicationDecision,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    row = application_service.decide_application(
        db,
        principal=p,
        application_id=application_id,
        decision=ApplicationStatus(payload.decision),
    )
    db.commit()
    db.refresh(row)
    return row
