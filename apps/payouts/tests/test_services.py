from unittest.mock import MagicMock, patch

import pytest

from apps.accounts.models import LandlordAccount
from apps.accounts.services import update_balance
from apps.audit.models import AuditLog
from apps.authentication.models import User
from apps.payments.models import Payment
from apps.payments.rail import TransferResult
from apps.payouts.models import PayoutRequest
from apps.payouts.services import (
    approve_payout_request,
    cancel_payout_request,
    create_payout_request,
    mark_payout_completed,
    mark_payout_failed,
    process_payout,
    reject_payout_request,
    sync_transfer_status,
)
from apps.payouts.tasks import sync_processing_payouts
from core.exceptions import (
    InsufficientFunds,
    InvalidArgument,
    InvalidTransition,
    LedgerInconsistency,
    PaymentRailError,
    PayoutNotAllowed,
)

NET = 9_000_000


def _account(landlord):
    return LandlordAccount.objects.get(landlord=landlord)


def _rail(**attrs):
    rail = MagicMock()
    for name, value in attrs.items():
        setattr(rail, name, value)
    return rail


@pytest.mark.django_db
def test_oldest_payments_are_allocated_first(landlord, released_payment):
    first, second, third = (released_payment() for _ in range(3))

    payout = create_payout_request(landlord, 12_000_000)

    assert payout.status == "pending"
    assert payout.idempotency_key == f"payout-{payout.pk}"
    assert payout.destination_account_id == "acct_landlord_1"
    assert set(payout.related_payments.all()) == {first, second}
    allocated = Payment.objects.filter(allocated_to_payout=True)
    assert set(allocated) == {first, second}
    assert all(p.payout_request_id == payout.pk for p in allocated)
    third.refresh_from_db()
    assert third.allocated_to_payout is False
    assert AuditLog.objects.filter(action="payout_requested", entity_id=str(payout.pk)).exists()


@pytest.mark.django_db
def test_second_full_balance_request_fails(landlord, released_payment):
    released_payment()
    released_payment()
    balance = _account(landlord).available_balance
    assert balance == 2 * NET

    first = create_payout_request(landlord, balance)
    with pytest.raises(InsufficientFunds):
        create_payout_request(landlord, balance)

    assert PayoutRequest.objects.count() == 1
    assert Payment.objects.filter(payout_request=first).count() == 2
    assert not Payment.objects.filter(allocated_to_payout=False, escrow_status="released").exists()


@pytest.mark.django_db
def test_lost_allocation_race_rolls_back(landlord, released_payment):
    payment = released_payment()
    other = create_payout_request(landlord, NET)
    payment.refresh_from_db()
    assert payment.payout_request_id == other.pk

    # Selection saw the payment as free but another request claimed it first.
    with patch("apps.payouts.services._allocatable_payments", return_value=[payment]):
        with pytest.raises(InsufficientFunds):
            create_payout_request(landlord, NET)

    assert PayoutRequest.objects.count() == 1
    payment.refresh_from_db()
    assert payment.payout_request_id == other.pk


@pytest.mark.django_db
def test_request_is_validated_first(landlord, released_payment):
    released_payment()

    with pytest.raises(PayoutNotAllowed) as excinfo:
        create_payout_request(landlord, 1000)

    assert excinfo.value.reasons == ["Minimum payout amount is 5,000,000"]
    assert not PayoutRequest.objects.exists()


@pytest.mark.django_db
def test_bank_transfer_needs_bank_details(released_payment, application):
    released_payment()
    landlord = application.landlord
    User.objects.filter(pk=landlord.pk).update(bank_name=None, account_number=None)
    landlord.refresh_from_db()

    with pytest.raises(InvalidArgument) as excinfo:
        create_payout_request(landlord, NET, "bank_transfer")
    assert excinfo.value.field == "bank_details"

    payout = create_payout_request(
        landlord,
        NET,
        "bank_transfer",
        {"bank_name": "GTBank", "account_number": "0987654321"},
    )
    assert payout.bank_details["bank_name"] == "GTBank"
    assert payout.bank_details["account_name"] == "Lola Adeyemi"


@pytest.mark.django_db
def test_pending_balance_cannot_back_a_payout(landlord, released_payment):
    update_balance(landlord, 10_000_000, 1_000_000, NET, bucket="pending")

    with pytest.raises(PayoutNotAllowed) as excinfo:
        create_payout_request(landlord, NET)
    assert excinfo.value.reasons == ["Insufficient available balance"]

    released_payment()
    payout = create_payout_request(landlord, NET)
    allocated = Payment.objects.get(payout_request=payout)
    assert allocated.landlord_net_amount == NET
    assert _account(landlord).pending_balance == NET


@pytest.mark.django_db
def test_unknown_method_is_rejected(landlord):
    with pytest.raises(InvalidArgument) as excinfo:
        create_payout_request(landlord, NET, "cash")
    assert excinfo.value.field == "payment_method"


@pytest.mark.django_db
def test_reject_deallocates_payments(landlord, admin_user, released_payment):
    released_payment()
    released_payment()
    payout = create_payout_request(landlord, 2 * NET)

    with pytest.raises(InvalidArgument):
        reject_payout_request(payout, admin_user, " ")

    payout = reject_payout_request(payout, admin_user, "Documents mismatch")

    assert payout.status == "rejected"
    assert payout.rejection_reason == "Documents mismatch"
    assert payout.reviewed_by == admin_user
    assert not Payment.objects.filter(allocated_to_payout=True).exists()
    assert not Payment.objects.filter(payout_request__isnull=False).exists()
    assert payout.related_payments.count() == 2
    assert _account(landlord).available_balance == 2 * NET

    again = create_payout_request(landlord, 2 * NET)
    assert again.related_payments.count() == 2


@pytest.mark.django_db
def test_landlord_can_cancel_pending_request(landlord, admin_user, released_payment):
    released_payment()
    payout = create_payout_request(landlord, NET)

    with pytest.raises(InvalidTransition):
        cancel_payout_request(payout, admin_user)

    payout = cancel_payout_request(payout, landlord)

    assert payout.status == "rejected"
    assert payout.rejection_reason == "Cancelled by landlord"
    assert not Payment.objects.filter(allocated_to_payout=True).exists()


@pytest.mark.django_db
def test_connect_payout_completes_once(landlord, admin_user, released_payment):
    released_payment()
    released_payment()
    payout = create_payout_request(landlord, 12_000_000)

    with pytest.raises(InvalidTransition):
        process_payout(payout, admin_user)

    approve_payout_request(payout, admin_user, "Looks good")
    rail = _rail(initiate_transfer=MagicMock(return_value=TransferResult("tr_42", "paid")))
    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        payout = process_payout(payout, admin_user)

    rail.initiate_transfer.assert_called_once_with(
        "acct_landlord_1",
        12_000_000,
        "NGN",
        idempotency_key=f"payout-{payout.pk}",
    )
    assert payout.status == "completed"
    assert payout.transfer_reference == "tr_42"
    assert payout.completed_at is not None

    account = _account(landlord)
    assert account.available_balance == 2 * NET - 12_000_000
    assert account.total_payouts == 12_000_000
    assert account.last_payout_at is not None

    with pytest.raises(InvalidTransition):
        process_payout(payout, admin_user)
    assert sync_transfer_status(payout).status == "completed"
    assert _account(landlord).total_payouts == 12_000_000


@pytest.mark.django_db
def test_rail_error_fails_and_releases_payments(landlord, admin_user, released_payment):
    released_payment()
    payout = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    rail = _rail(initiate_transfer=MagicMock(side_effect=PaymentRailError("Payment provider error (400): No such destination")))

    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        payout = process_payout(payout, admin_user)

    assert payout.status == "failed"
    assert "No such destination" in payout.failure_reason
    assert not Payment.objects.filter(allocated_to_payout=True).exists()
    assert _account(landlord).available_balance == NET
    assert _account(landlord).total_payouts == 0


@pytest.mark.django_db
def test_in_flight_transfer_is_synced_later(landlord, admin_user, released_payment):
    released_payment()
    payout = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    rail = _rail(
        initiate_transfer=MagicMock(return_value=TransferResult("tr_slow", "pending")),
        get_transfer_status=MagicMock(return_value="pending"),
    )

    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        payout = process_payout(payout, admin_user)
        assert payout.status == "processing"

        assert sync_processing_payouts() == {"checked": 1, "completed": 0, "failed": 0, "errors": 0}

        rail.get_transfer_status.return_value = "paid"
        assert sync_processing_payouts() == {"checked": 1, "completed": 1, "failed": 0, "errors": 0}

    rail.get_transfer_status.assert_called_with("tr_slow")
    payout.refresh_from_db()
    assert payout.status == "completed"
    assert _account(landlord).available_balance == 0


@pytest.mark.django_db
def test_reversed_transfer_fails_payout(landlord, admin_user, released_payment):
    released_payment()
    payout = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    rail = _rail(
        initiate_transfer=MagicMock(return_value=TransferResult("tr_rev", "pending")),
        get_transfer_status=MagicMock(return_value="reversed"),
    )

    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        process_payout(payout, admin_user)
        payout = sync_transfer_status(payout.pk)

    assert payout.status == "failed"
    assert not Payment.objects.filter(allocated_to_payout=True).exists()


@pytest.mark.django_db
def test_bank_transfer_is_settled_manually(landlord, admin_user, released_payment):
    released_payment()
    payout = create_payout_request(landlord, NET, "bank_transfer")
    approve_payout_request(payout, admin_user)

    payout = process_payout(payout, admin_user, transfer_reference="NIP-0001")
    assert payout.status == "processing"
    assert payout.transfer_reference == "NIP-0001"

    payout = mark_payout_completed(payout, admin_user)
    assert payout.status == "completed"
    with pytest.raises(InvalidTransition):
        mark_payout_completed(payout, admin_user)

    account = _account(landlord)
    assert account.available_balance == 0
    assert account.total_payouts == NET


@pytest.mark.django_db
def test_bank_transfer_failure(landlord, admin_user, released_payment):
    released_payment()
    payout = create_payout_request(landlord, NET, "bank_transfer")
    approve_payout_request(payout, admin_user)
    payout = process_payout(payout, admin_user)

    payout = mark_payout_failed(payout, admin_user, "Account closed at bank")

    assert payout.status == "failed"
    assert payout.failure_reason == "Account closed at bank"
    assert not Payment.objects.filter(allocated_to_payout=True).exists()


@pytest.mark.django_db
def test_connect_transfer_in_flight_is_not_settled_manually(landlord, admin_user, released_payment):
    released_payment()
    payout = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    rail = _rail(initiate_transfer=MagicMock(return_value=TransferResult("tr_wait", "in_transit")))
    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        payout = process_payout(payout, admin_user)

    with pytest.raises(InvalidTransition):
        mark_payout_completed(payout, admin_user)
    with pytest.raises(InvalidTransition):
        mark_payout_failed(payout, admin_user, "Gave up")
    payout.refresh_from_db()
    assert payout.status == "processing"


@pytest.mark.django_db
def test_malformed_transfer_response_fails_payout(landlord, admin_user, released_payment, settings):
    settings.STRIPE_SECRET_KEY = "sk_test_1"
    released_payment()
    payout = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    resp = MagicMock(status_code=200, text="<html>upstream timeout</html>")
    resp.json.side_effect = ValueError("Expecting value")

    with patch("apps.payments.rail.requests.request", return_value=resp):
        payout = process_payout(payout, admin_user)

    assert payout.status == "failed"
    assert "unreadable response" in payout.failure_reason
    assert not Payment.objects.filter(allocated_to_payout=True).exists()
    assert _account(landlord).available_balance == NET


@pytest.mark.django_db
def test_connect_payout_without_transfer_can_be_resolved_by_admin(landlord, admin_user, released_payment):
    released_payment()
    released_payment()
    stuck = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    rail = _rail(initiate_transfer=MagicMock(side_effect=RuntimeError("worker killed")))
    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        with pytest.raises(RuntimeError):
            process_payout(stuck, admin_user)

    stuck.refresh_from_db()
    assert stuck.status == "processing"
    assert stuck.transfer_reference is None
    assert sync_processing_payouts()["checked"] == 0

    stuck = mark_payout_failed(stuck, admin_user, "No transfer was created")
    assert stuck.status == "failed"
    assert not Payment.objects.filter(allocated_to_payout=True).exists()

    found = approve_payout_request(create_payout_request(landlord, NET), admin_user)
    with patch("apps.payouts.services.get_payment_rail", return_value=rail):
        with pytest.raises(RuntimeError):
            process_payout(found, admin_user)
    found = mark_payout_completed(found, admin_user, transfer_reference="tr_from_dashboard")
    assert found.status == "completed"
    assert found.transfer_reference == "tr_from_dashboard"
    assert _account(landlord).available_balance == NET


@pytest.mark.django_db
def test_completion_never_overdraws_balance(landlord, admin_user, released_payment):
    released_payment()
    payout = create_payout_request(landlord, NET, "bank_transfer")
    approve_payout_request(payout, admin_user)
    process_payout(payout, admin_user)
    LandlordAccount.objects.filter(landlord=landlord).update(available_balance=NET - 1)

    with pytest.raises(LedgerInconsistency):
        mark_payout_completed(payout, admin_user)

    payout.refresh_from_db()
    assert payout.status == "processing"
    account = _account(landlord)
    assert account.available_balance == NET - 1
    assert account.total_payouts == 0
