from __future__ import annotations

import base64
import uuid

from fastapi.testclient import TestClient

from onboarding.main import create_app


def _hdrs(email: str, role: str) -> dict:
    return {"X-User-Email": email, "X-User-Role": role}


def _people():
    tag = uuid.uuid4().hex[:8]
    return _hdrs(f"landlord-{tag}@api.local", "landlord"), _hdrs(f"tenant-{tag}@api.local", "tenant")


def test_health():
    client = TestClient(create_app())
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.headers.get("X-Request-ID")


def test_missing_identity_is_401():
    client = TestClient(create_app())
    r = client.get("/api/viewings")
    assert r.status_code == 401


def test_request_validation_errors_are_shaped():
    client = TestClient(create_app())
    landlord, _ = _people()
    r = client.post("/api/tenancies", headers=landlord, json={"property_id": 1, "monthly_rent": -5, "start_date": "2026-12-01"})
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == "validation_failed"
    assert any(e["field"] == "monthly_rent" for e in body["errors"])


def test_full_onboarding_flow(complete_profile, signature_png):
    client = TestClient(create_app())
    landlord, tenant = _people()

    r = client.post("/api/properties", headers=landlord, json={"title": "Canal View", "location": "4 Lock Road"})
    assert r.status_code == 201, r.text
    property_id = r.json()["id"]

    # Gate closed without a viewing
    r = client.get(f"/api/properties/{property_id}/access", headers=tenant)
    assert r.json()["reason"] == "no-viewing"
    r = client.post("/api/applications", headers=tenant, json={"property_id": property_id})
    assert r.status_code == 403
    assert r.json()["code"] == "application_blocked"
    assert r.json()["reason"] == "no-viewing"

    # Screening: autosave draft shows up before any row exists, then explicit save
    r = client.patch("/api/screening/profile", headers=tenant, json={"first_name": "Ada"})
    assert r.status_code == 200
    assert r.json()["exists"] is False
    r = client.get("/api/screening/profile", headers=tenant)
    assert r.json()["first_name"] == "Ada"

    r = client.put("/api/screening/profile", headers=tenant, json=complete_profile)
    assert r.status_code == 200, r.text
    assert r.json()["exists"] is True
    assert r.json()["failing_sections"] == []

    # Viewing lifecycle
    r = client.post("/api/viewings", headers=tenant, json={"property_id": property_id})
    assert r.status_code == 201, r.text
    viewing = r.json()
    assert viewing["status"] == "requested"
    tenant_id = viewing["tenant_id"]

    r = client.post(f"/api/viewings/{viewing['id']}/schedule", headers=tenant, json={"scheduled_date": "2026-11-02T10:00:00"})
    assert r.status_code == 403

    r = client.post(f"/api/viewings/{viewing['id']}/schedule", headers=landlord, json={"scheduled_date": "2026-11-02T10:00:00"})
    assert r.json()["status"] == "scheduled"
    r = client.post(f"/api/viewings/{viewing['id']}/complete", headers=landlord, json={"notes": "went well"})
    assert r.json()["status"] == "completed"
    r = client.get(f"/api/properties/{property_id}/access", headers=tenant)
    assert r.json()["reason"] == "awaiting-confirmation"

    client.post(f"/api/viewings/{viewing['id']}/confirm", headers=landlord)
    r = client.post(f"/api/viewings/{viewing['id']}/send-application", headers=landlord)
    assert r.json()["viewing_confirmed"] is True
    assert r.json()["application_sent"] is True

    # Application, once
    r = client.post("/api/applications", headers=tenant, json={"property_id": property_id})
    assert r.status_code == 201, r.text
    application = r.json()
    assert application["status"] == "pending"
    r = client.post("/api/applications", headers=tenant, json={"property_id": property_id})
    assert r.status_code == 409
    assert r.json()["code"] == "already_applied"

    r = client.post(f"/api/applications/{application['id']}/decision", headers=landlord, json={"decision": "accepted"})
    assert r.json()["status"] == "accepted"

    # Tenancy + lease
    r = client.post(
        "/api/tenancies",
        headers=landlord,
        json={
            "property_id": property_id,
            "tenant_id": tenant_id,
            "monthly_rent": 5000,
            "security_deposit": 5000,
            "start_date": "2026-12-01",
            "end_date": "2027-11-30",
        },
    )
    assert r.status_code == 201, r.text
    tenancy_id = r.json()["id"]
    assert r.json()["lease_status"] == "draft"

    r = client.post(f"/api/tenancies/{tenancy_id}/lease/generate", headers=landlord)
    assert r.status_code == 200, r.text
    assert r.json()["lease_status"] == "awaiting_tenant_signature"
    assert r.json()["lease_document_path"]

    r = client.post(f"/api/tenancies/{tenancy_id}/lease/generate", headers=landlord)
    assert r.status_code == 409

    r = client.get(f"/api/tenancies/{tenancy_id}/lease/document", headers=tenant)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")

    sig = base64.b64encode(signature_png).decode()
    r = client.post(f"/api/tenancies/{tenancy_id}/lease/sign", headers=tenant, json={"signature_png": sig})
    assert r.status_code == 200, r.text
    assert r.json()["lease_status"] == "awaiting_landlord_signature"

    r = client.post(
        f"/api/tenancies/{tenancy_id}/lease/sign",
        headers=landlord,
        json={"signature_png": f"data:image/png;base64,{sig}"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["lease_status"] == "completed"
    assert r.json()["status"] == "active"

    r = client.post(f"/api/tenancies/{tenancy_id}/lease/sign", headers=tenant, json={"signature_png": sig})
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_transition"

    r = client.get("/api/workflow/notifications", headers=landlord, params={"event_type": "notification.lease_signed"})
    titles = [e["payload"]["title"] for e in r.json()]
    assert titles == ["Tenant Signed Lease Agreement"]
