"""
Tests for the consent state machine.
"""
from decimal import Decimal
import pytest
from tripledger.core.errors import (
    ConflictError, NotFoundError, PermissionDeniedError, ValidationError,
)
from tripledger.models.expense import Consent, ConsentStatus, Involvement
from tripledger.services import consent_service, expense_service


@pytest.fixture
def dinner(db, party):
    return expense_service.create_expense(
        party["trip"].id, party["P"].id, "Dinner", 300, [party["D1"].id, party["D2"].id], db
    )


def consent_of(db, expense, user) -> Consent:
    return db.query(Consent).filter(
        Consent.expense_id == expense.id,
        Consent.debtor_user_id == user.id
    ).one()


def test_debtor_approves(db, party, dinner):
    consent = consent_of(db, dinner, party["D1"])
    before = consent.timestamp

    updated = consent_service.set_consent(consent.id, party["D1"].id, "Approved", db)

    assert updated.status == ConsentStatus.APPROVED
    assert updated.timestamp >= before


def test_dispute_keeps_involvement(db, party, dinner):
    consent = consent_of(db, dinner, party["D1"])

    updated = consent_service.set_consent(
        consent.id, party["D1"].id, ConsentStatus.DISPUTED, db, reason="I skipped dessert"
    )

    assert updated.status == ConsentStatus.DISPUTED
    assert updated.reason == "I skipped dessert"
    involvement = db.query(Involvement).filter(
        Involvement.expense_id == dinner.id,
        Involvement.debtor_user_id == party["D1"].id
    ).one()
    assert involvement.share_amount == Decimal("100")


def test_only_owner_can_set_consent(db, party, dinner):
    consent = consent_of(db, dinner, party["D1"])
    for intruder in (party["D2"], party["P"]):
        with pytest.raises(PermissionDeniedError):
            consent_service.set_consent(consent.id, intruder.id, "Approved", db)
    db.refresh(consent)
    assert consent.status == ConsentStatus.REQUIRED


def test_approved_is_terminal(db, party, dinner):
    consent = consent_of(db, dinner, party["D1"])
    consent_service.set_consent(consent.id, party["D1"].id, "Approved", db)

    with pytest.raises(ConflictError):
        consent_service.set_consent(consent.id, party["D1"].id, "Disputed", db)


def test_disputed_waits_for_payer(db, party, dinner):
    consent = consent_of(db, dinner, party["D1"])
    consent_service.set_consent(consent.id, party["D1"].id, "Disputed", db)

    with pytest.raises(ConflictError):
        consent_service.set_consent(consent.id, party["D1"].id, "Approved", db)


@pytest.mark.parametrize("status", ["Required", "Pre_Approved", "Maybe"])
def test_debtor_cannot_pick_other_states(db, party, dinner, status):
    consent = consent_of(db, dinner, party["D1"])
    with pytest.raises(ValidationError):
        consent_service.set_consent(consent.id, party["D1"].id, status, db)


def test_pre_approved_behaves_like_required(db, party, dinner):
    consent = consent_of(db, dinner, party["D1"])
    consent.status = ConsentStatus.PRE_APPROVED
    db.commit()

    pending = consent_service.list_pending_consents(party["trip"].id, party["D1"].id, db)
    assert [c.id for c in pending] == [consent.id]

    updated = consent_service.set_consent(consent.id, party["D1"].id, "Approved", db)
    assert updated.status == ConsentStatus.APPROVED


def test_missing_consent(db, party):
    with pytest.raises(NotFoundError):
        consent_service.set_consent(12345, party["D1"].id, "Approved", db)


def test_raise_dispute_by_expense(db, party, dinner):
    consent = consent_service.raise_dispute(dinner.id, party["D2"].id, db, reason="Wasn't there")

    assert consent.status == ConsentStatus.DISPUTED
    assert consent.debtor_user_id == party["D2"].id


def test_raise_dispute_requires_debtor(db, party, dinner):
    with pytest.raises(PermissionDeniedError):
        consent_service.raise_dispute(dinner.id, party["D3"].id, db)
    with pytest.raises(NotFoundError):
        consent_service.raise_dispute(999, party["D1"].id, db)


def test_pending_consents_only_lists_open_requests(db, party, dinner):
    trip = party["trip"]
    lunch = expense_service.create_expense(trip.id, party["D2"].id, "Lunch", 60, [party["D1"].id], db)
    consent_service.set_consent(consent_of(db, dinner, party["D1"]).id, party["D1"].id, "Approved", db)

    pending = consent_service.list_pending_consents(trip.id, party["D1"].id, db)

    assert [c.expense_id for c in pending] == [lunch.id]
    assert consent_service.list_pending_consents(trip.id, party["P"].id, db) == []
