# backend/onboarding/routers/screening.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..deps import get_autosave
from ..domain.screening import ProfileData, failing_sections
from ..schemas import ScreeningProfileIn, ScreeningProfileOut
from ..services import screening_service
from ..services.screening_service import ScreeningAutosave

router = APIRouter(prefix="/screening", tags=["screening"])


def _out(user_id: int, profile: ProfileData, *, exists: bool, is_complete: bool, consent_date=None) -> ScreeningProfileOut:
    return ScreeningProfileOut(
        **profile.as_dict(),
        user_id=user_id,
        exists=exists,
        is_complete=is_complete,
        screening_consent_date=consent_date,
        failing_sections=[s.value for s in failing_sections(profile)],
    )


@router.get("/profile", response_model=ScreeningProfileOut)
def get_profile(
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    autosave: ScreeningAutosave = Depends(get_autosave),
):
    state = screening_service.load_or_create(db, user_id=p.user_id)
    # an unsaved draft is newer than the stored row
    profile = autosave.draft(p.user_id) or state.profile
    return _out(
        p.user_id,
        profile,
        exists=state.exists,
        is_complete=state.is_complete,
        consent_date=state.screening_consent_date,
    )


@router.put("/profile", response_model=ScreeningProfileOut)
def save_profile(
    payload: ScreeningProfileIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    autosave: ScreeningAutosave = Depends(get_autosave),
):
    """Explicit save: upserts the row without marking it complete."""
    autosave.discard(p.user_id)
    profile = ProfileData.from_dict(payload.model_dump())
    row = screening_service.save_profile(db, user_id=p.user_id, profile=profile)
    db.commit()
    return _out(p.user_id, profile, exists=True, is_complete=bool(row.is_complete), consent_date=row.screening_consent_date)


@router.patch("/profile", response_model=ScreeningProfileOut)
def autosave_profile(
    partial: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    autosave: ScreeningAutosave = Depends(get_autosave),
):
    """Field-level autosave. Persisted after a quiet period, and only once a row exists."""
    merged = autosave.autosave(db, user_id=p.user_id, partial=partial)
    state = screening_service.load_or_create(db, user_id=p.user_id)
    return _out(
        p.user_id,
        merged,
        exists=state.exists,
        is_complete=state.is_complete,
        consent_date=state.screening_consent_date,
    )


@router.post("/profile/finalize", response_model=ScreeningProfileOut)
def finalize_profile(
    payload: ScreeningProfileIn,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    autosave: ScreeningAutosave = Depends(get_autosave),
):
    autosave.discard(p.user_id)
    profile = ProfileData.from_dict(payload.model_dump())
    row = screening_service.finalize(db, user_id=p.user_id, profile=profile)
    db.commit()
    return _out(p.user_id, profile, exists=True, is_complete=True, consent_date=row.screening_consent_date)
