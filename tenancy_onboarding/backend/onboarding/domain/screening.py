# backend/onboarding/domain/screening.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Any, Optional


class ScreeningSection(str, Enum):
    PERSONAL = "personal"
    HOUSEHOLD = "household"
    INCOME = "income"
    RESIDENCE = "residence"
    CONSENT = "consent"


REQUIRED_SECTIONS = (
    ScreeningSection.PERSONAL,
    ScreeningSection.INCOME,
    ScreeningSection.RESIDENCE,
    ScreeningSection.CONSENT,
)


@dataclass
class Occupant:
    name: str
    relationship: str


@dataclass
class IncomeSource:
    type: str
    monthly_income: float
    employer: str
    started_on: Optional[date] = None
    job_title: Optional[str] = None
    employer_contact_name: Optional[str] = None
    employer_contact_email: Optional[str] = None
    employer_contact_phone: Optional[str] = None
    documents: list[str] = field(default_factory=list)


@dataclass
class Residence:
    type: str
    street: str
    city: str
    province: str
    postcode: str
    moved_in: Optional[date] = None
    monthly_rent: float = 0.0
    reason_for_moving: Optional[str] = None
    landlord_name: Optional[str] = None
    landlord_email: Optional[str] = None
    landlord_phone: Optional[str] = None


@dataclass
class ProfileData:
    """
    In-memory screening profile used by the validators and the autosave
    buffer. Mirrors the persisted columns; lists hold plain dataclasses.
    """

    first_name: str = ""
    middle_name: Optional[str] = None
    last_name: str = ""
    occupants: list[Occupant] = field(default_factory=list)
    has_pets: bool = False
    pet_details: Optional[str] = None
    income_sources: list[IncomeSource] = field(default_factory=list)
    residences: list[Residence] = field(default_factory=list)
    screening_consent: bool = False

    def merge(self, partial: dict[str, Any]) -> "ProfileData":
        """Field-level last-write-wins merge; unknown keys are ignored."""
        data = self.as_dict()
        for k, v in (partial or {}).items():
            if k in data:
                data[k] = v
        return ProfileData.from_dict(data)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProfileData":
        d = dict(data or {})
        return cls(
            first_name=str(d.get("first_name") or ""),
            middle_name=d.get("middle_name"),
            last_name=str(d.get("last_name") or ""),
            occupants=[_coerce(Occupant, x) for x in d.get("occupants") or []],
            has_pets=bool(d.get("has_pets") or False),
            pet_details=d.get("pet_details"),
            income_sources=[_coerce(IncomeSource, x) for x in d.get("income_sources") or []],
            residences=[_coerce(Residence, x) for x in d.get("residences") or []],
            screening_consent=bool(d.get("screening_consent") or False),
        )


DATE_FIELDS = ("started_on", "moved_in")


def _coerce(kind, value):
    if isinstance(value, kind):
        return value
    d = dict(value)
    for k in DATE_FIELDS:
        if isinstance(d.get(k), str) and d[k]:
            d[k] = date.fromisoformat(d[k][:10])
    known = kind.__dataclass_fields__
    return kind(**{k: v for k, v in d.items() if k in known})


def _blank(s: Optional[str]) -> bool:
    return not (s or "").strip()


def section_valid(profile: ProfileData, section: ScreeningSection) -> bool:
    if section is ScreeningSection.PERSONAL:
        return not _blank(profile.first_name) and not _blank(profile.last_name)
    if section is ScreeningSection.HOUSEHOLD:
        return True
    if section is ScreeningSection.INCOME:
        return len(profile.income_sources) > 0
    if section is ScreeningSection.RESIDENCE:
        return len(profile.residences) > 0
    if section is ScreeningSection.CONSENT:
        return profile.screening_consent is True
    return False


def failing_sections(profile: ProfileData) -> list[ScreeningSection]:
    return [s for s in REQUIRED_SECTIONS if not section_valid(profile, s)]


def is_submit_ready(profile: ProfileData) -> bool:
    return not failing_sections(profile)
