from __future__ import annotations

import pytest

from onboarding.domain.errors import (
    AlreadyApplied,
    ApplicationBlocked,
    InvalidTransition,
    NotAuthenticated,
    Unauthorized,
    ValidationFailed,
)
from onboarding.domain.screening import ProfileData
from onboarding.domain.statuses import ApplicationStatus
from onboarding.models import Application
from onboarding.services import application_service, screening_service


def _count(db, prop, tenant) -> int:
    return (
        db.query(Application)
        .filter(Application.property_id == prop.id, Application.tenant_id == tenant.id)
        .count()
    )


def _save_profile(db, tenant, data):
    screening_service.save_profile(db, user_id=tenant.id, profile=ProfileData.from_dict(data))
    db.commit()


def test_no_viewing_blocks_before_touching_the_store(db_session, prop, tenant, as_principal, complete_profile):
    _save_profile(db_session, tenant, complete_profile)

    with pytest.raises(ApplicationBlocked) as ei:
        application_service.submit_application(db_session, principal=as_principal(tenant), property_id=prop.id)
    assert ei.value.reason == "no-viewing"
    assert ei.value.status_code == 403

    db_session.rollback()
    assert _count(db_session, prop, tenant) == 0
    assert screening_service.get_profile_row(db_session, tenant.id).is_complete is False


def test_anonymous_caller_is_rejected(db_session, prop):
    with pytest.raises(NotAuthenticated):
        application_service.submit_application(db_session, principal=None, property_id=prop.id)


def test_submission_marks_profile_complete_and_inserts_pending(
    db_session, prop, landlord, tenant, as_principal, complete_profile, open_gate
):
    _save_profile(db_session, tenant, complete_profile)
    v = open_gate(prop, landlord, tenant)

    result = application_service.submit_application(db_session, principal=as_principal(tenant), property_id=prop.id)
    db_session.commit()

    app = result.application
    assert result.created is True
    assert app.status == "pending"
    assert app.viewing_id == v.id
    assert app.landlord_id == landlord.id

    row = screening_service.get_profile_row(db_session, tenant.id)
    assert row.is_complete is True
    assert row.screening_consent_date is not None


def test_second_sequential_submission_is_short_circuited(
    db_session, prop, landlord, tenant, as_principal, complete_profile, open_gate
):
    _save_profile(db_session, tenant, complete_profile)
    open_gate(prop, landlord, tenant)
    tp = as_principal(tenant)

    application_service.submit_application(db_session, principal=tp, property_id=prop.id)
    db_session.commit()

    with pytest.raises(AlreadyApplied):
        application_service.submit_application(db_session, principal=tp, property_id=prop.id)
    db_session.rollback()

    assert _count(db_session, prop, tenant) == 1


def test_incomplete_profile_is_refused(db_session, prop, landlord, tenant, as_principal, complete_profile, open_gate):
    _save_profile(db_session, tenant, dict(complete_profile, income_sources=[]))
    open_gate(prop, landlord, tenant)

    with pytest.raises(ValidationFailed) as ei:
        application_service.submit_application(db_session, principal=as_principal(tenant), property_id=prop.id)
    assert ei.value.context["sections"] == ["income"]
    db_session.rollback()
    assert _count(db_session, prop, tenant) == 0


def test_missing_profile_is_refused(db_session, prop, landlord, tenant, as_principal, open_gate):
    open_gate(prop, landlord, tenant)
    with pytest.raises(ValidationFailed):
        application_service.submit_application(db_session, principal=as_principal(tenant), property_id=prop.id)


def test_invite_is_upgraded_not_duplicated(
    db_session, prop, landlord, tenant, as_principal, complete_profile, open_gate
):
    _save_profile(db_session, tenant, complete_profile)
    invited = application_service.invite_applicant(
        db_session, principal=as_principal(landlord), property_id=prop.id, tenant_id=tenant.id
    )
    db_session.commit()
    assert invited.status == "invited"

    open_gate(prop, landlord, tenant)
    result = application_service.submit_application(db_session, principal=as_principal(tenant), property_id=prop.id)
    db_session.commit()

    assert result.created is False
    assert result.application.id == invited.id
    assert result.application.status == "submitted"
    assert _count(db_session, prop, tenant) == 1


def test_invite_is_landlord_only(db_session, prop, tenant, other_user, as_principal):
    with pytest.raises(Unauthorized):
        application_service.invite_applicant(
            db_session, principal=as_principal(other_user), property_id=prop.id, tenant_id=tenant.id
        )


def test_invite_requires_an_existing_tenant(db_session, prop, landlord, as_principal):
    lp = as_principal(landlord)
    with pytest.raises(ValidationFailed):
        application_service.invite_applicant(db_session, principal=lp, property_id=prop.id, tenant_id=987655)
    with pytest.raises(ValidationFailed):
        application_service.invite_applicant(db_session, principal=lp, property_id=prop.id, tenant_id=landlord.id)
    db_session.rollback()
    assert db_session.query(Application).filter(Application.property_id == prop.id).count() == 0


def test_decision_is_terminal(db_session, prop, landlord, tenant, as_principal, complete_profile, open_gate):
    _save_profile(db_session, tenant, complete_profile)
    open_gate(prop, landlord, tenant)
    app = application_service.submit_application(db_session, principal=as_principal(tenant), property_id=prop.id).application
    db_session.commit()

    lp = as_principal(landlord)
    with pytest.raises(Unauthorized):
        application_service.decide_application(
            db_session, principal=as_principal(tenant), application_id=app.id, decision=ApplicationStatus.ACCEPTED
        )

    application_service.decide_application(db_session, principal=lp, application_id=app.id, decision=ApplicationStatus.ACCEPTED)
    db_session.commit()
    assert app.status == "accepted"

    with pytest.raises(InvalidTransition):
        application_service.decide_application(
            db_session, principal=lp, application_id=app.id, decision=ApplicationStatus.DECLINED
        )
    with pytest.raises(ValidationFailed):
        application_service.decide_application(
            db_session, principal=lp, application_id=app.id, decision=ApplicationStatus.PENDING
        )
