# backend/onboarding/services/events_facade.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import WorkflowEvent


def _dumps(v: Any) -> str:
    try:
        return json.dumps(v, default=str)
    except Exception:
        return "{}"


def _loads(s: Optional[str], default: Any) -> Any:
    if not s:
        return default
    try:
        return json.loads(s)
    except Exception:
        return default


@dataclass(frozen=True)
class WorkflowEventOut:
    id: int
    property_id: Optional[int]
    actor_user_id: Optional[int]
    recipient_user_id: Optional[int]
    event_type: str
    payload: dict[str, Any]
    created_at: Optional[datetime]


class WorkflowFacade:
    """
    Small facade for emitting/querying pipeline milestones
    (viewing.scheduled, application.submitted, lease.signed, ...)
    without duplicating JSON plumbing.

    emit() only adds the row; the caller's commit persists it together with
    the state change that produced it.
    """

    def emit(
        self,
        db: Session,
        *,
        event_type: str,
        actor_user_id: Optional[int],
        property_id: Optional[int] = None,
        recipient_user_id: Optional[int] = None,
        payload: dict[str, Any] | None = None,
        created_at: Optional[datetime] = None,
    ) -> WorkflowEvent:
        if not event_type:
            raise ValueError("event_type required")

        row = WorkflowEvent(
            property_id=property_id,
            actor_user_id=actor_user_id,
            recipient_user_id=recipient_user_id,
            event_type=str(event_type),
            payload_json=_dumps(payload or {}),
            created_at=created_at or datetime.utcnow(),
        )
        db.add(row)
        return row

    def list(
        self,
        db: Session,
        *,
        property_id: Optional[int] = None,
        recipient_user_id: Optional[int] = None,
        event_type: Optional[str] = None,
        limit: int = 200,
    ) -> list[WorkflowEventOut]:
        q = select(WorkflowEvent).order_by(WorkflowEvent.id.desc())
        if property_id is not None:
            q = q.where(WorkflowEvent.property_id == int(property_id))
        if recipient_user_id is not None:
            q = q.where(WorkflowEvent.recipient_user_id == int(recipient_user_id))
        if event_type:
            q = q.where(WorkflowEvent.event_type == str(event_type))

        rows = db.scalars(q.limit(int(limit))).all()
        return [
            WorkflowEventOut(
                id=int(r.id),
                property_id=r.property_id,
                actor_user_id=r.actor_user_id,
                recipient_user_id=r.recipient_user_id,
                event_type=str(r.event_type or ""),
                payload=_loads(r.payload_json, {}),
                created_at=r.created_at,
            )
            for r in rows
        ]


wf = WorkflowFacade()
