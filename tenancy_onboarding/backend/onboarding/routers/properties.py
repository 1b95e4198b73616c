# backend/onboarding/routers/properties.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.audit import emit_audit
from ..models import Property
from ..schemas import AccessStateOut, PropertyCreate, PropertyOut
from ..services.ownership import must_get_property
from ..services.viewing_service import access_state

router = APIRouter(prefix="/properties", tags=["properties"])


@router.post("", response_model=PropertyOut, status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = Property(**payload.model_dump(), landlord_id=p.user_id)
    db.add(row)
    db.commit()
    db.refresh(row)

    emit_audit(
        db,
        actor_user_id=p.user_id,
        action="property.create",
        entity_type="Property",
        entity_id=str(row.id),
        before=None,
        after=payload.model_dump(),
    )
    return row


@router.get("", response_model=list[PropertyOut])
def list_properties(
    mine: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    q = select(Property)
    if mine:
        q = q.where(Property.landlord_id == p.user_id)
    return list(db.scalars(q.order_by(desc(Property.id)).limit(limit)).all())


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_property(db, property_id=property_id)


@router.get("/{property_id}/access", response_model=AccessStateOut)
def get_access_state(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    """Can the calling tenant apply for this property right now, and if not, why."""
    prop = must_get_property(db, property_id=property_id)
    decision = access_state(db, property_id=prop.id, tenant_id=p.user_id)
    return AccessStateOut(property_id=prop.id, tenant_id=p.user_id, **decision.as_dict())
