from __future__ import annotations

import inspect

from onboarding.models import Tenancy
from onboarding.services import viewing_service


def test_document_ref_is_a_plain_property():
    assert isinstance(inspect.getattr_static(Tenancy, "document_ref"), property)


def test_tenancy_document_ref_prefers_storage_path(prop, landlord, tenant, make_tenancy):
    stored = make_tenancy(prop, landlord, tenant, lease_document_path=f"{landlord.id}/lease.pdf")
    assert stored.document_ref == f"{landlord.id}/lease.pdf"

    legacy = make_tenancy(prop, landlord, tenant, lease_document_url="https://files.example/lease.pdf")
    assert legacy.document_ref == "https://files.example/lease.pdf"

    assert make_tenancy(prop, landlord, tenant).document_ref is None


def test_rows_link_back_to_their_listing(db_session, prop, landlord, tenant, make_tenancy, as_principal):
    t = make_tenancy(prop, landlord, tenant)
    v = viewing_service.create_viewing(db_session, principal=as_principal(tenant), property_id=prop.id)
    db_session.commit()

    assert t.listing.id == prop.id
    assert v.listing.title == "Harbour Flat"
    db_session.refresh(prop)
    assert {x.id for x in prop.tenancies} >= {t.id}
    assert [x.id for x in prop.viewings] == [v.id]
