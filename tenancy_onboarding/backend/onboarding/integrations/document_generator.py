# backend/onboarding/integrations/document_generator.py
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from ..domain.errors import InvalidTransition, NotFound
from ..domain.statuses import LeaseStatus
from ..models import AppUser, Property, Tenancy
from .blob_store import BlobStore

log = logging.getLogger(__name__)

LEASE_TERMS = [
    "1. The tenant agrees to pay the monthly rent on or before the 1st day of each month.",
    "2. The security deposit will be returned within 30 days of lease termination, subject to property condition.",
    "3. The tenant is responsible for maintaining the property in good condition.",
    "4. No subletting is allowed without written consent from the landlord.",
    "5. The landlord has the right to inspect the property with 24-hour notice.",
    "6. Any damages beyond normal wear and tear will be deducted from the security deposit.",
    "7. This lease agreement is governed by local housing laws and regulations.",
]


@dataclass(frozen=True)
class LeaseTerms:
    property_title: str
    property_location: str
    property_description: str
    landlord_name: str
    tenant_name: str
    monthly_rent: float
    security_deposit: float
    start_date: str
    end_date: str


def _display_name(user: Optional[AppUser]) -> str:
    if user is None:
        return "-"
    return str(user.display_name or user.email)


def load_terms(db: Session, tenancy: Tenancy) -> LeaseTerms:
    prop = db.get(Property, tenancy.property_id)
    if prop is None:
        raise NotFound("property not found", property_id=tenancy.property_id)
    landlord = db.get(AppUser, tenancy.landlord_id)
    tenant = db.get(AppUser, tenancy.tenant_id) if tenancy.tenant_id is not None else None
    return LeaseTerms(
        property_title=prop.title,
        property_location=prop.location,
        property_description=prop.description or "",
        landlord_name=_display_name(landlord),
        tenant_name=_display_name(tenant),
        monthly_rent=float(tenancy.monthly_rent or 0.0),
        security_deposit=float(tenancy.security_deposit or 0.0),
        start_date=tenancy.start_date.isoformat() if tenancy.start_date else "-",
        end_date=tenancy.end_date.isoformat() if tenancy.end_date else "open-ended",
    )


def render_lease_pdf(terms: LeaseTerms) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title="Residential Lease Agreement",
    )
    styles = getSampleStyleSheet()
    h1, h2, body = styles["Title"], styles["Heading2"], styles["Normal"]

    story = [
        Paragraph("RESIDENTIAL LEASE AGREEMENT", h1),
        Spacer(1, 6 * mm),
        Paragraph("PROPERTY INFORMATION", h2),
        Paragraph(f"Property: {escape(terms.property_title)}", body),
        Paragraph(f"Address: {escape(terms.property_location)}", body),
        Paragraph(f"Description: {escape(terms.property_description)}", body),
        Spacer(1, 4 * mm),
        Paragraph("PARTIES", h2),
        Paragraph(f"Landlord: {escape(terms.landlord_name)}", body),
        Paragraph(f"Tenant: {escape(terms.tenant_name)}", body),
        Spacer(1, 4 * mm),
        Paragraph("LEASE TERMS", h2),
        Paragraph(f"Monthly Rent: {terms.monthly_rent:,.2f}", body),
        Paragraph(f"Security Deposit: {terms.security_deposit:,.2f}", body),
        Paragraph(f"Lease Start Date: {terms.start_date}", body),
        Paragraph(f"Lease End Date: {terms.end_date}", body),
        Spacer(1, 4 * mm),
        Paragraph("TERMS AND CONDITIONS", h2),
    ]
    story.extend(Paragraph(t, body) for t in LEASE_TERMS)
    story.extend(
        [
            Spacer(1, 12 * mm),
            Paragraph("Landlord Signature: ___________________________ Date: ___________", body),
            Spacer(1, 8 * mm),
            Paragraph("Tenant Signature: _____________________________ Date: ___________", body),
        ]
    )
    doc.build(story)
    return buf.getvalue()


def claim_draft(db: Session, *, tenancy_id: int, document_path: str, now: datetime) -> bool:
    """
    Conditional draft -> awaiting_tenant_signature write.

    Returns False when the tenancy already left draft (another generation or
    upload won). This is the only place that moves a lease out of draft.
    """
    res = db.execute(
        update(Tenancy)
        .where(
            Tenancy.id == int(tenancy_id),
            or_(Tenancy.lease_status == LeaseStatus.DRAFT.value, Tenancy.lease_status.is_(None)),
        )
        .values(
            lease_document_path=document_path,
            lease_status=LeaseStatus.AWAITING_TENANT_SIGNATURE.value,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return int(res.rowcount or 0) == 1


class LeaseDocumentGenerator:
    """
    Renders the lease, stores it, and records it on the tenancy.

    The generator owns the status write out of draft; callers trigger it and
    re-read the tenancy afterwards.
    """

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store

    def generate(self, db: Session, *, tenancy_id: int, now: Optional[datetime] = None) -> str:
        now = now or datetime.utcnow()
        tenancy = db.scalar(select(Tenancy).where(Tenancy.id == int(tenancy_id)))
        if tenancy is None:
            raise NotFound("tenancy not found", tenancy_id=int(tenancy_id))

        log.info("generating lease pdf", extra={"tenancy_id": tenancy.id})
        pdf = render_lease_pdf(load_terms(db, tenancy))
        path = f"{tenancy.landlord_id}/{tenancy.id}/lease-{int(now.timestamp() * 1000)}.pdf"
        return self.attach(db, tenancy_id=tenancy.id, path=path, data=pdf, now=now)

    def attach(self, db: Session, *, tenancy_id: int, path: str, data: bytes, now: Optional[datetime] = None) -> str:
        """Store an already rendered (or landlord-uploaded) lease PDF."""
        now = now or datetime.utcnow()
        ref = self.blob_store.upload(path, data, content_type="application/pdf")

        if not claim_draft(db, tenancy_id=tenancy_id, document_path=ref, now=now):
            db.rollback()
            self.blob_store.delete(ref)
            raise InvalidTransition("lease document was already generated", tenancy_id=int(tenancy_id))

        db.commit()
        log.info("lease document recorded %s", ref, extra={"tenancy_id": int(tenancy_id)})
        return ref
