from __future__ import annotations

import os
import tempfile
import uuid
from datetime import date, datetime

# Settings are read at import time; point them at throwaway storage first.
_TMP = tempfile.mkdtemp(prefix="onboarding-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'onboarding-test.db')}"
os.environ["BLOB_ROOT"] = os.path.join(_TMP, "blobs")
os.environ["APP_ENV"] = "local"
os.environ["AUTH_MODE"] = "dev"
os.environ["NOTIFY_WEBHOOK_URL"] = ""

import pytest  # noqa: E402

from onboarding.auth import Principal  # noqa: E402
from onboarding.db import SessionLocal, init_db  # noqa: E402
from onboarding.integrations.blob_store import LocalBlobStore  # noqa: E402
from onboarding.models import AppUser, Property, Tenancy  # noqa: E402
from onboarding.services import viewing_service  # noqa: E402

init_db()

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _mk_user(db, role: str) -> AppUser:
    email = f"{role}-{uuid.uuid4().hex[:10]}@t.local"
    u = AppUser(email=email, display_name=email.split("@")[0], role=role, created_at=datetime.utcnow())
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def landlord(db_session) -> AppUser:
    return _mk_user(db_session, "landlord")


@pytest.fixture
def tenant(db_session) -> AppUser:
    return _mk_user(db_session, "tenant")


@pytest.fixture
def other_user(db_session) -> AppUser:
    return _mk_user(db_session, "tenant")


@pytest.fixture
def prop(db_session, landlord) -> Property:
    p = Property(
        landlord_id=landlord.id,
        title="Harbour Flat",
        location="12 Harbour Street",
        description="Two bedrooms",
        created_at=datetime.utcnow(),
    )
    db_session.add(p)
    db_session.commit()
    db_session.refresh(p)
    return p


def principal_for(user: AppUser) -> Principal:
    return Principal(user_id=int(user.id), email=str(user.email), role=str(user.role))


@pytest.fixture
def as_principal():
    return principal_for


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(root=str(tmp_path))


@pytest.fixture
def signature_png() -> bytes:
    return PNG_BYTES


@pytest.fixture
def complete_profile() -> dict:
    return {
        "first_name": "Ada",
        "last_name": "Okafor",
        "occupants": [{"name": "Tunde", "relationship": "partner"}],
        "has_pets": False,
        "income_sources": [
            {"type": "employment", "monthly_income": 4200.0, "employer": "Acme", "started_on": "2022-03-01"}
        ],
        "residences": [
            {
                "type": "rent",
                "street": "3 Mill Lane",
                "city": "Leeds",
                "province": "WY",
                "postcode": "LS1 4AB",
                "moved_in": "2021-06-01",
                "monthly_rent": 950.0,
            }
        ],
        "screening_consent": True,
    }


@pytest.fixture
def open_gate(db_session):
    """Walk a viewing to completed + confirmed + application sent."""

    def _walk(prop, landlord, tenant):
        lp, tp = principal_for(landlord), principal_for(tenant)
        v = viewing_service.create_viewing(db_session, principal=tp, property_id=prop.id)
        viewing_service.schedule_viewing(
            db_session, principal=lp, viewing_id=v.id, scheduled_date=datetime(2026, 11, 2, 10, 0)
        )
        viewing_service.complete_viewing(db_session, principal=lp, viewing_id=v.id)
        viewing_service.confirm_viewing(db_session, principal=lp, viewing_id=v.id)
        viewing_service.send_application(db_session, principal=lp, viewing_id=v.id)
        db_session.commit()
        return v

    return _walk


@pytest.fixture
def make_tenancy(db_session):
    def _make(prop, landlord, tenant=None, **overrides):
        values = dict(
            property_id=prop.id,
            landlord_id=landlord.id,
            tenant_id=tenant.id if tenant is not None else None,
            monthly_rent=1200.0,
            security_deposit=1200.0,
            start_date=date(2026, 12, 1),
            end_date=date(2027, 11, 30),
            lease_status="draft",
            status="draft",
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        values.update(overrides)
        t = Tenancy(**values)
        db_session.add(t)
        db_session.commit()
        db_session.refresh(t)
        return t

    return _make
