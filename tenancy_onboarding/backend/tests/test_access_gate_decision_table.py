from __future__ import annotations

import itertools

import pytest

from onboarding.domain.access_gate import AccessReason, ViewingSnapshot, evaluate_access
from onboarding.domain.statuses import ViewingStatus


def test_no_viewing_is_blocked():
    d = evaluate_access(None)
    assert d.allowed is False
    assert d.reason is AccessReason.NO_VIEWING


def test_cancelled_viewing_counts_as_no_viewing():
    d = evaluate_access(ViewingSnapshot(ViewingStatus.CANCELLED, True, True, viewing_id=3))
    assert d.reason is AccessReason.NO_VIEWING


@pytest.mark.parametrize(
    "status,confirmed,sent,reason",
    [
        (ViewingStatus.REQUESTED, False, False, AccessReason.VIEWING_REQUESTED),
        (ViewingStatus.SCHEDULED, False, False, AccessReason.VIEWING_SCHEDULED),
        (ViewingStatus.COMPLETED, False, False, AccessReason.AWAITING_CONFIRMATION),
        (ViewingStatus.COMPLETED, True, False, AccessReason.AWAITING_APPLICATION),
        (ViewingStatus.COMPLETED, True, True, AccessReason.ALLOWED),
    ],
)
def test_decision_table_rows(status, confirmed, sent, reason):
    d = evaluate_access(ViewingSnapshot(status, confirmed, sent, viewing_id=7))
    assert d.reason is reason
    assert d.viewing_id == 7


def test_allowed_only_via_completed_confirmed_and_sent():
    for status, confirmed, sent in itertools.product(list(ViewingStatus), [False, True], [False, True]):
        d = evaluate_access(ViewingSnapshot(status, confirmed, sent))
        expected = status is ViewingStatus.COMPLETED and confirmed and sent
        assert d.allowed is expected, (status, confirmed, sent)


def test_stray_flags_do_not_open_a_scheduled_viewing():
    d = evaluate_access(ViewingSnapshot(ViewingStatus.SCHEDULED, True, True))
    assert d.reason is AccessReason.VIEWING_SCHEDULED


def test_sent_without_confirmation_still_awaits_confirmation():
    d = evaluate_access(ViewingSnapshot(ViewingStatus.COMPLETED, False, True))
    assert d.reason is AccessReason.AWAITING_CONFIRMATION
    assert d.as_dict() == {"allowed": False, "reason": "awaiting-confirmation", "viewing_id": None}
