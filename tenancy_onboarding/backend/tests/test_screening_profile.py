from __future__ import annotations

from datetime import date

import pytest

from onboarding.domain.errors import ValidationFailed
from onboarding.domain.screening import (
    ProfileData,
    ScreeningSection,
    failing_sections,
    is_submit_ready,
    section_valid,
)
from onboarding.services import screening_service


def test_load_or_create_returns_empty_default_without_persisting(db_session, tenant):
    state = screening_service.load_or_create(db_session, user_id=tenant.id)
    assert state.exists is False
    assert state.is_complete is False
    assert state.profile == ProfileData()
    assert screening_service.get_profile_row(db_session, tenant.id) is None


def test_section_validators():
    p = ProfileData()
    assert not section_valid(p, ScreeningSection.PERSONAL)
    assert section_valid(p, ScreeningSection.HOUSEHOLD)
    assert failing_sections(p) == [
        ScreeningSection.PERSONAL,
        ScreeningSection.INCOME,
        ScreeningSection.RESIDENCE,
        ScreeningSection.CONSENT,
    ]

    p = p.merge({"first_name": "Ada", "last_name": "   "})
    assert not section_valid(p, ScreeningSection.PERSONAL)


def test_finalize_round_trips_lists(db_session, tenant, complete_profile):
    profile = ProfileData.from_dict(complete_profile)
    assert is_submit_ready(profile)

    screening_service.finalize(db_session, user_id=tenant.id, profile=profile)
    db_session.commit()
    db_session.expire_all()

    state = screening_service.load_or_create(db_session, user_id=tenant.id)
    assert state.exists and state.is_complete
    assert state.screening_consent_date is not None
    assert state.profile.income_sources == profile.income_sources
    assert state.profile.residences == profile.residences
    assert state.profile.occupants == profile.occupants
    assert state.profile.income_sources[0].started_on == date(2022, 3, 1)
    assert state.profile.residences[0].monthly_rent == 950.0


def test_finalize_twice_updates_the_same_row(db_session, tenant, complete_profile):
    profile = ProfileData.from_dict(complete_profile)
    first = screening_service.finalize(db_session, user_id=tenant.id, profile=profile)
    db_session.commit()

    second = screening_service.finalize(db_session, user_id=tenant.id, profile=profile.merge({"first_name": "Adaeze"}))
    db_session.commit()

    assert first.id == second.id
    assert screening_service.load_or_create(db_session, user_id=tenant.id).profile.first_name == "Adaeze"


def test_finalize_rejects_incomplete_profile(db_session, tenant, complete_profile):
    data = dict(complete_profile, residences=[], screening_consent=False)
    with pytest.raises(ValidationFailed) as ei:
        screening_service.finalize(db_session, user_id=tenant.id, profile=ProfileData.from_dict(data))
    assert ei.value.context["sections"] == ["residence", "consent"]
    assert screening_service.get_profile_row(db_session, tenant.id) is None


def test_consent_date_only_stamped_with_consent(db_session, tenant, complete_profile):
    row = screening_service.save_profile(
        db_session,
        user_id=tenant.id,
        profile=ProfileData.from_dict(dict(complete_profile, screening_consent=False)),
    )
    screening_service.mark_complete(db_session, row=row, consent=False)
    db_session.commit()
    assert row.is_complete is True
    assert row.screening_consent_date is None


def test_merge_ignores_unknown_keys_and_keeps_other_fields(complete_profile):
    p = ProfileData.from_dict(complete_profile)
    merged = p.merge({"last_name": "Bello", "favourite_colour": "green"})
    assert merged.last_name == "Bello"
    assert merged.first_name == "Ada"
    assert merged.income_sources == p.income_sources
