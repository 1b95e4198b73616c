# backend/onboarding/routers/viewings.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..deps import get_notifier
from ..integrations.notifier import PipelineNotifier
from ..schemas import ViewingComplete, ViewingCreate, ViewingOut, ViewingSchedule
from ..services import viewing_service
from ..services.ownership import must_get_viewing, require_party_of

router = APIRouter(prefix="/viewings", tags=["viewings"])


def _committed(db: Session, row, notifier: PipelineNotifier, *, action: str, actor_user_id: int):
    db.commit()
    db.refresh(row)
    viewing_service.notify_change(db, notifier=notifier, viewing=row, action=action, actor_user_id=actor_user_id)
    db.refresh(row)
    return row


@router.post("", response_model=ViewingOut, status_code=201)
def request_viewing(
    payload: ViewingCreate,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    notifier: PipelineNotifier = Depends(get_notifier),
):
    row = viewing_service.create_viewing(db, principal=p, **payload.model_dump())
    return _committed(db, row, notifier, action="viewing.requested", actor_user_id=p.user_id)


@router.get("", response_model=list[ViewingOut])
def list_viewings(
    property_id: Optional[int] = Query(default=None),
    conversation_id: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return viewing_service.list_viewings(
        db,
        user_id=p.user_id,
        property_id=property_id,
        conversation_id=conversation_id,
        limit=limit,
    )


@router.get("/{viewing_id}", response_model=ViewingOut)
def get_viewing(viewing_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_viewing(db, viewing_id=viewing_id)
    require_party_of(row, user_id=p.user_id, what="viewing")
    return row


@router.post("/{viewing_id}/schedule", response_model=ViewingOut)
def schedule_viewing(
    viewing_id: int,
    payload: ViewingSchedule,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    notifier: PipelineNotifier = Depends(get_notifier),
):
    row = viewing_service.schedule_viewing(db, principal=p, viewing_id=viewing_id, scheduled_date=payload.scheduled_date)
    return _committed(db, row, notifier, action="viewing.scheduled", actor_user_id=p.user_id)


@router.post("/{viewing_id}/complete", response_model=ViewingOut)
def complete_viewing(
    viewing_id: int,
    payload: ViewingComplete | None = None,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    notifier: PipelineNotifier = Depends(get_notifier),
):
    row = viewing_service.complete_viewing(
        db,
        principal=p,
        viewing_id=viewing_id,
        notes=payload.notes if payload else None,
    )
    return _committed(db, row, notifier, action="viewing.completed", actor_user_id=p.user_id)


@router.post("/{viewing_id}/cancel", response_model=ViewingOut)
def cancel_viewing(
    viewing_id: int,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    notifier: PipelineNotifier = Depends(get_notifier),
):
    row = viewing_service.cancel_viewing(db, principal=p, viewing_id=viewing_id)
    return _committed(db, row, notifier, action="viewing.cancelled", actor_user_id=p.user_id)


@router.post("/{viewing_id}/confirm", response_model=ViewingOut)
def confirm_viewing(viewing_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = viewing_service.confirm_viewing(db, principal=p, viewing_id=viewing_id)
    db.commit()
    db.refresh(row)
    return row


@router.post("/{viewing_id}/send-application", response_model=ViewingOut)
def send_application(viewing_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = viewing_service.send_application(db, principal=p, viewing_id=viewing_id)
    db.commit()
    db.refresh(row)
    return row
