from __future__ import annotations

from datetime import datetime

import pytest

from onboarding.domain.errors import InvalidTransition, RemoteCallFailed, Unauthorized, ValidationFailed
from onboarding.integrations.document_generator import LeaseDocumentGenerator, claim_draft
from onboarding.services import lease_service


def test_generate_moves_draft_to_awaiting_tenant(db_session, prop, landlord, tenant, as_principal, blob_store, make_tenancy):
    t = make_tenancy(prop, landlord, tenant, monthly_rent=5000.0, security_deposit=5000.0)
    gen = LeaseDocumentGenerator(blob_store)

    row = lease_service.generate_lease(
        db_session,
        principal=as_principal(landlord),
        tenancy_id=t.id,
        generator=gen,
        now=datetime(2026, 10, 19, 12, 0),
    )

    assert row.lease_status == "awaiting_tenant_signature"
    assert row.lease_document_path
    assert row.lease_document_path.startswith(f"{landlord.id}/{t.id}/lease-")
    assert row.lease_document_path.endswith(".pdf")
    assert blob_store.download(row.lease_document_path).startswith(b"%PDF")


def test_second_generate_is_rejected(db_session, prop, landlord, tenant, as_principal, blob_store, make_tenancy):
    t = make_tenancy(prop, landlord, tenant)
    gen = LeaseDocumentGenerator(blob_store)
    lp = as_principal(landlord)

    first = lease_service.generate_lease(db_session, principal=lp, tenancy_id=t.id, generator=gen)
    path = first.lease_document_path

    with pytest.raises(InvalidTransition):
        lease_service.generate_lease(db_session, principal=lp, tenancy_id=t.id, generator=gen)

    db_session.refresh(t)
    assert t.lease_document_path == path
    assert t.lease_status == "awaiting_tenant_signature"


def test_generator_refuses_when_draft_was_claimed_concurrently(db_session, prop, landlord, tenant, blob_store, make_tenancy):
    t = make_tenancy(prop, landlord, tenant)
    # another request won the draft between the caller's check and the write
    assert claim_draft(db_session, tenancy_id=t.id, document_path="x/y/lease-1.pdf", now=datetime.utcnow())
    db_session.commit()

    gen = LeaseDocumentGenerator(blob_store)
    with pytest.raises(InvalidTransition):
        gen.generate(db_session, tenancy_id=t.id, now=datetime(2026, 10, 19, 12, 0))

    db_session.expire_all()
    assert t.lease_document_path == "x/y/lease-1.pdf"
    # the losing upload was cleaned up
    assert not (blob_store.base / f"{landlord.id}/{t.id}/lease-{int(datetime(2026, 10, 19, 12, 0).timestamp() * 1000)}.pdf").exists()


def test_generate_requires_landlord_and_tenant(db_session, prop, landlord, tenant, as_principal, blob_store, make_tenancy):
    gen = LeaseDocumentGenerator(blob_store)

    no_tenant = make_tenancy(prop, landlord)
    with pytest.raises(ValidationFailed):
        lease_service.generate_lease(db_session, principal=as_principal(landlord), tenancy_id=no_tenant.id, generator=gen)

    t = make_tenancy(prop, landlord, tenant)
    with pytest.raises(Unauthorized):
        lease_service.generate_lease(db_session, principal=as_principal(tenant), tenancy_id=t.id, generator=gen)


def test_generator_failure_leaves_state_unchanged(db_session, prop, landlord, tenant, as_principal, make_tenancy):
    class BrokenGenerator:
        def generate(self, db, *, tenancy_id, now=None):
            raise OSError("disk full")

    t = make_tenancy(prop, landlord, tenant)
    with pytest.raises(RemoteCallFailed):
        lease_service.generate_lease(db_session, principal=as_principal(landlord), tenancy_id=t.id, generator=BrokenGenerator())

    db_session.refresh(t)
    assert t.lease_status == "draft"
    assert t.lease_document_path is None


def test_uploaded_lease_takes_the_same_path(db_session, prop, landlord, tenant, as_principal, blob_store, make_tenancy):
    t = make_tenancy(prop, landlord, tenant)
    gen = LeaseDocumentGenerator(blob_store)
    lp = as_principal(landlord)

    with pytest.raises(ValidationFailed):
        lease_service.upload_lease(db_session, principal=lp, tenancy_id=t.id, data=b"not a pdf", generator=gen)

    row = lease_service.upload_lease(db_session, principal=lp, tenancy_id=t.id, data=b"%PDF-1.4 landlord copy", generator=gen)
    assert row.lease_status == "awaiting_tenant_signature"

    ref, data = lease_service.open_document(db_session, principal=as_principal(tenant), tenancy_id=t.id, blob_store=blob_store)
    assert ref == row.lease_document_path
    assert data == b"%PDF-1.4 landlord copy"


def test_open_document_is_for_parties_only(db_session, prop, landlord, tenant, other_user, as_principal, blob_store, make_tenancy):
    t = make_tenancy(prop, landlord, tenant)
    with pytest.raises(Unauthorized):
        lease_service.open_document(db_session, principal=as_principal(other_user), tenancy_id=t.id, blob_store=blob_store)


def test_legacy_document_url_is_fetched_over_http(db_session, prop, landlord, tenant, as_principal, blob_store, make_tenancy, monkeypatch):
    t = make_tenancy(
        prop,
        landlord,
        tenant,
        lease_status="generated",
        lease_document_url="https://files.example.test/leases/old.pdf",
    )
    seen = {}

    def fake_fetch(url):
        seen["url"] = url
        return b"%PDF-legacy"

    monkeypatch.setattr(blob_store, "_fetch_url", fake_fetch)
    ref, data = lease_service.open_document(db_session, principal=as_principal(landlord), tenancy_id=t.id, blob_store=blob_store)

    assert ref == "https://files.example.test/leases/old.pdf"
    assert data == b"%PDF-legacy"
    assert seen["url"] == ref
