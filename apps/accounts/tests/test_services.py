import pytest
from django.utils import timezone

from apps.accounts.models import LandlordAccount
from apps.accounts.services import (
    can_request_payout,
    create_or_get_account,
    get_account_balance,
    get_earnings_breakdown,
    reconcile_account,
    set_account_status,
    update_balance,
)
from core.exceptions import InvalidArgument, NotALandlord


@pytest.mark.django_db
def test_account_is_created_once(landlord):
    first = create_or_get_account(landlord)
    second = create_or_get_account(landlord.pk)

    assert first.pk == second.pk
    assert LandlordAccount.objects.count() == 1
    assert first.kyc_verified is True


@pytest.mark.django_db
def test_non_landlord_has_no_account(tenant):
    with pytest.raises(NotALandlord):
        create_or_get_account(tenant)


@pytest.mark.django_db
def test_kyc_flag_follows_user_record(landlord):
    create_or_get_account(landlord)

    landlord.kyc_status = "rejected"
    landlord.save()
    assert create_or_get_account(landlord).kyc_verified is False
    assert LandlordAccount.objects.get(landlord=landlord).kyc_verified is False

    landlord.kyc_status = "verified"
    landlord.kyc_verified_at = timezone.now()
    landlord.save()
    account = create_or_get_account(landlord)
    assert account.kyc_verified is True
    assert account.kyc_verified_at == landlord.kyc_verified_at


@pytest.mark.django_db
def test_update_balance_buckets(landlord):
    update_balance(landlord, 100000, 10000, 90000)
    account = update_balance(landlord, 50000, 5000, 45000, bucket="pending")

    assert account.total_gross_earnings == 150000
    assert account.total_commission_paid == 15000
    assert account.total_net_earnings == 135000
    assert account.available_balance == 90000
    assert account.pending_balance == 45000
    assert account.is_consistent


@pytest.mark.django_db
def test_update_balance_rejects_unknown_bucket(landlord):
    with pytest.raises(InvalidArgument) as excinfo:
        update_balance(landlord, 100, 10, 90, bucket="escrow")
    assert excinfo.value.field == "bucket"


@pytest.mark.django_db
def test_all_payout_blockers_are_reported(landlord, settings):
    settings.MINIMUM_PAYOUT_AMOUNT = 5_000_000
    landlord.kyc_status = "submitted"
    landlord.save()
    set_account_status(landlord, "suspended")

    result = can_request_payout(landlord, 1000)

    assert result.can_request is False
    assert result.reasons == [
        "KYC verification required",
        "Minimum payout amount is 5,000,000",
        "Insufficient available balance",
        "Account is suspended",
    ]


@pytest.mark.django_db
def test_payout_allowed_with_enough_balance(landlord):
    update_balance(landlord, 10_000_000, 1_000_000, 9_000_000)

    result = can_request_payout(landlord, 5_000_000)

    assert result.can_request is True
    assert result.reasons == []


@pytest.mark.django_db
def test_balance_snapshot(landlord):
    update_balance(landlord, 100000, 10000, 90000)

    balance = get_account_balance(landlord)

    assert balance["available_balance"] == 90000
    assert balance["total_net_earnings"] == 90000
    assert balance["account_status"] == "active"
    assert balance["is_consistent"] is True


@pytest.mark.django_db
def test_earnings_breakdown_lists_released_payments(landlord, released_payment):
    first = released_payment(amount=100000)
    released_payment(amount=200000)

    breakdown = get_earnings_breakdown(landlord)

    assert breakdown["payment_count"] == 2
    assert breakdown["total_gross_earnings"] == 300000
    assert breakdown["total_commission_paid"] == 30000
    assert breakdown["total_net_earnings"] == 270000
    assert breakdown["payments"][0]["id"] == str(first.pk)

    later = get_earnings_breakdown(landlord, start=timezone.now())
    assert later["payment_count"] == 0


@pytest.mark.django_db
def test_reconcile_reports_drift(landlord, released_payment):
    released_payment(amount=100000)
    assert reconcile_account(landlord)["ok"] is True

    LandlordAccount.objects.filter(landlord=landlord).update(total_net_earnings=1)

    report = reconcile_account(landlord)
    assert report["ok"] is False
    assert report["net_drift"] == 1 - 90000
