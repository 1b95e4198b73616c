# backend/onboarding/routers/workflow.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..schemas import WorkflowEventOut
from ..services.events_facade import wf
from ..services.ownership import must_get_property, require_landlord_of

router = APIRouter(prefix="/workflow", tags=["workflow"])


@router.get("/notifications", response_model=list[WorkflowEventOut])
def my_notifications(
    event_type: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    """Pipeline events addressed to the caller (lease signed, application invited, ...)."""
    return wf.list(db, recipient_user_id=p.user_id, event_type=event_type, limit=limit)


@router.get("/events", response_model=list[WorkflowEventOut])
def property_events(
    property_id: int = Query(...),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    prop = must_get_property(db, property_id=property_id)
    require_landlord_of(prop, user_id=p.user_id, what="property")
    return wf.list(db, property_id=prop.id, limit=limit)
