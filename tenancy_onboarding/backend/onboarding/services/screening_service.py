# backend/onboarding/services/screening_service.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.audit import audit_write
from ..domain.errors import ValidationFailed
from ..domain.screening import ProfileData, failing_sections
from ..models import ScreeningProfile
from .debounce import Debouncer

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScreeningState:
    user_id: int
    profile: ProfileData
    exists: bool
    is_complete: bool
    screening_consent_date: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.utcnow()


def get_profile_row(db: Session, user_id: int) -> Optional[ScreeningProfile]:
    return db.scalar(select(ScreeningProfile).where(ScreeningProfile.user_id == int(user_id)))


def _row_to_profile(row: ScreeningProfile) -> ProfileData:
    return ProfileData.from_dict(
        {
            "first_name": row.first_name,
            "middle_name": row.middle_name,
            "last_name": row.last_name,
            "occupants": row.occupants,
            "has_pets": row.has_pets,
            "pet_details": row.pet_details,
            "income_sources": row.income_sources,
            "residences": row.residences,
            "screening_consent": row.screening_consent,
        }
    )


def _apply_profile(row: ScreeningProfile, profile: ProfileData) -> None:
    d = profile.as_dict()
    row.first_name = d["first_name"]
    row.middle_name = d["middle_name"]
    row.last_name = d["last_name"]
    row.has_pets = d["has_pets"]
    row.pet_details = d["pet_details"]
    row.screening_consent = d["screening_consent"]
    row.set_lists(
        occupants=d["occupants"],
        income_sources=d["income_sources"],
        residences=d["residences"],
    )
    row.updated_at = _utcnow()


def load_or_create(db: Session, *, user_id: int) -> ScreeningState:
    """
    Existing profile, or an empty default. Never raises for a missing row;
    the default is not persisted.
    """
    row = get_profile_row(db, user_id)
    if row is None:
        return ScreeningState(user_id=int(user_id), profile=ProfileData(), exists=False, is_complete=False)
    return ScreeningState(
        user_id=int(user_id),
        profile=_row_to_profile(row),
        exists=True,
        is_complete=bool(row.is_complete),
        screening_consent_date=row.screening_consent_date,
    )


def save_profile(db: Session, *, user_id: int, profile: ProfileData) -> ScreeningProfile:
    """Insert-or-update without touching is_complete."""
    row = get_profile_row(db, user_id)
    created = row is None
    if created:
        row = ScreeningProfile(user_id=int(user_id), created_at=_utcnow())
        db.add(row)

    _apply_profile(row, profile)
    db.flush()

    audit_write(
        db,
        actor_user_id=int(user_id),
        action="screening_profile.create" if created else "screening_profile.update",
        entity_type="ScreeningProfile",
        entity_id=str(row.id),
        after={"is_complete": bool(row.is_complete)},
    )
    return row


def finalize(db: Session, *, user_id: int, profile: ProfileData) -> ScreeningProfile:
    """
    Upsert the full profile and mark it complete.

    Refuses a profile whose required sections do not validate. The consent
    timestamp is stamped only when consent is granted.
    """
    bad = failing_sections(profile)
    if bad:
        raise ValidationFailed(
            "screening profile is incomplete",
            sections=[s.value for s in bad],
        )

    row = save_profile(db, user_id=user_id, profile=profile)
    mark_complete(db, row=row, consent=profile.screening_consent)
    log.info("screening profile finalized", extra={"user_id": int(user_id)})
    return row


def mark_complete(db: Session, *, row: ScreeningProfile, consent: bool) -> ScreeningProfile:
    row.is_complete = True
    row.screening_consent_date = _utcnow() if consent else None
    row.updated_at = _utcnow()
    db.add(row)
    db.flush()
    return row


# -----------------------------------------------------------------------------
# Debounced autosave
# -----------------------------------------------------------------------------
class ScreeningAutosave:
    """
    Per-tenant in-memory draft + debounced persistence.

    autosave() merges the partial update into the tenant's draft right away
    and (re)arms a timer; when it fires, the latest draft is written with a
    fresh session. Only an existing row is updated: the first save of a
    profile goes through save_profile()/finalize(). A draft is dropped from
    memory once the timer has handled it, whether it was written or skipped.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        delay_seconds: float,
        debouncer: Optional[Debouncer] = None,
    ):
        self._session_factory = session_factory
        self._debouncer = debouncer or Debouncer(delay_seconds)
        self._drafts: dict[int, ProfileData] = {}
        self._lock = threading.Lock()

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    def draft(self, user_id: int) -> Optional[ProfileData]:
        with self._lock:
            return self._drafts.get(int(user_id))

    def autosave(self, db: Session, *, user_id: int, partial: dict[str, Any]) -> ProfileData:
        uid = int(user_id)
        with self._lock:
            base = self._drafts.get(uid)
        if base is None:
            base = load_or_create(db, user_id=uid).profile

        try:
            merged = base.merge(partial)
        except (TypeError, ValueError) as e:
            raise ValidationFailed("screening update has malformed fields", user_id=uid) from e
        with self._lock:
            self._drafts[uid] = merged

        self._debouncer.schedule(uid, lambda: self._persist(uid))
        return merged

    def discard(self, user_id: int) -> None:
        uid = int(user_id)
        self._debouncer.cancel(uid)
        with self._lock:
            self._drafts.pop(uid, None)

    def flush(self, user_id: int) -> bool:
        return self._debouncer.flush(int(user_id))

    def _evict(self, user_id: int, profile: ProfileData) -> None:
        # a newer autosave() may have replaced the draft while we were writing
        with self._lock:
            if self._drafts.get(user_id) is profile:
                del self._drafts[user_id]

    def _persist(self, user_id: int) -> None:
        with self._lock:
            profile = self._drafts.get(user_id)
        if profile is None:
            return

        db = self._session_factory()
        try:
            row = get_profile_row(db, user_id)
            if row is None:
                log.info("autosave skipped: no profile row yet", extra={"user_id": user_id})
                self._evict(user_id, profile)
                return
            _apply_profile(row, profile)
            db.add(row)
            db.commit()
            self._evict(user_id, profile)
            log.info("screening profile autosaved", extra={"user_id": user_id})
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
