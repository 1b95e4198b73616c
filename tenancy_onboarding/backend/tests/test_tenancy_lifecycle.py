from __future__ import annotations

from datetime import date, datetime

import pytest

from onboarding.domain.errors import InvalidTransition, Unauthorized, ValidationFailed
from onboarding.services import tenancy_service


def test_create_tenancy_starts_as_draft(db_session, prop, landlord, tenant, as_principal):
    t = tenancy_service.create_tenancy(
        db_session,
        principal=as_principal(landlord),
        property_id=prop.id,
        monthly_rent=1500.0,
        security_deposit=1500.0,
        start_date=date(2026, 12, 1),
        end_date=date(2027, 11, 30),
        tenant_id=tenant.id,
    )
    db_session.commit()

    assert t.lease_status == "draft"
    assert t.status == "draft"
    assert t.landlord_id == landlord.id
    assert [x.id for x in tenancy_service.list_tenancies(db_session, user_id=tenant.id)] == [t.id]


def test_only_the_landlord_creates_a_tenancy(db_session, prop, tenant, as_principal):
    with pytest.raises(Unauthorized):
        tenancy_service.create_tenancy(
            db_session,
            principal=as_principal(tenant),
            property_id=prop.id,
            monthly_rent=1500.0,
            start_date=date(2026, 12, 1),
        )


def test_terms_are_checked(db_session, prop, landlord, as_principal):
    with pytest.raises(ValidationFailed):
        tenancy_service.create_tenancy(
            db_session,
            principal=as_principal(landlord),
            property_id=prop.id,
            monthly_rent=1500.0,
            start_date=date(2026, 12, 1),
            end_date=date(2026, 11, 1),
        )


def test_assign_tenant_only_while_draft(db_session, prop, landlord, tenant, as_principal, make_tenancy):
    lp = as_principal(landlord)
    t = make_tenancy(prop, landlord)
    tenancy_service.assign_tenant(db_session, principal=lp, tenancy_id=t.id, tenant_id=tenant.id)
    db_session.commit()
    assert t.tenant_id == tenant.id

    signed = make_tenancy(prop, landlord, tenant, lease_status="awaiting_tenant_signature")
    with pytest.raises(InvalidTransition):
        tenancy_service.assign_tenant(db_session, principal=lp, tenancy_id=signed.id, tenant_id=tenant.id)

    with pytest.raises(ValidationFailed):
        tenancy_service.assign_tenant(db_session, principal=lp, tenancy_id=t.id, tenant_id=landlord.id)


def test_end_and_terminate_only_from_active(db_session, prop, landlord, tenant, as_principal, make_tenancy):
    lp = as_principal(landlord)
    draft = make_tenancy(prop, landlord, tenant)
    with pytest.raises(InvalidTransition):
        tenancy_service.end_tenancy(db_session, principal=lp, tenancy_id=draft.id)

    active = make_tenancy(
        prop,
        landlord,
        tenant,
        lease_status="completed",
        status="active",
        landlord_signed_at=datetime(2026, 11, 1),
        tenant_signed_at=datetime(2026, 11, 1),
    )
    tenancy_service.terminate_tenancy(db_session, principal=lp, tenancy_id=active.id, notes="breach of terms")
    db_session.commit()
    assert active.status == "terminated"
    assert active.end_date == datetime.utcnow().date()
    assert active.notes == "breach of terms"
    assert active.lease_status == "completed"

    with pytest.raises(InvalidTransition):
        tenancy_service.end_tenancy(db_session, principal=lp, tenancy_id=active.id)


def test_party_access(db_session, prop, landlord, tenant, other_user, as_principal, make_tenancy):
    t = make_tenancy(prop, landlord, tenant)
    assert tenancy_service.get_for_party(db_session, principal=as_principal(tenant), tenancy_id=t.id).id == t.id
    with pytest.raises(Unauthorized):
        tenancy_service.get_for_party(db_session, principal=as_principal(other_user), tenancy_id=t.id)
