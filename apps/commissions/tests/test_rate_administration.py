from decimal import Decimal

import pytest

from apps.audit.models import AuditLog
from apps.commissions.models import PlatformSettings
from apps.commissions.services import (
    get_commission_history,
    get_current_commission_rate,
    get_total_commission_collected,
    update_commission_rate,
)
from core.exceptions import InvalidArgument


@pytest.mark.django_db
def test_default_settings_row_is_created_lazily():
    assert PlatformSettings.objects.count() == 0
    assert get_current_commission_rate() == Decimal("0.10")
    assert PlatformSettings.objects.count() == 1


@pytest.mark.django_db
def test_rate_with_more_than_four_places_is_rejected(admin_user):
    with pytest.raises(InvalidArgument) as excinfo:
        update_commission_rate("0.12345", admin_user, "Fine tuning")
    assert excinfo.value.field == "rate"
    assert get_current_commission_rate() == Decimal("0.10")
    assert not AuditLog.objects.exists()


@pytest.mark.django_db
def test_audit_entry_records_the_stored_rate(admin_user):
    change = update_commission_rate("0.1250", admin_user, "Fine tuning")

    stored = PlatformSettings.objects.get_current().commission_rate
    entry = AuditLog.objects.get(action="commission_rate_changed")
    assert change.new_rate == stored == Decimal("0.125")
    assert Decimal(entry.details["new_rate"]) == stored


@pytest.mark.django_db
def test_rate_change_bumps_version_and_writes_audit_entry(admin_user):
    change = update_commission_rate("0.12", admin_user, "Quarterly review", ip_address="10.0.0.1")

    assert change.old_rate == Decimal("0.10")
    assert change.new_rate == Decimal("0.12")
    assert change.version == 2

    current = PlatformSettings.objects.get_current()
    assert current.commission_rate == Decimal("0.1200")
    assert current.last_updated_by == admin_user
    assert PlatformSettings.objects.count() == 1

    entry = AuditLog.objects.get(action="commission_rate_changed")
    assert entry.user == admin_user
    assert entry.details["old_rate"] == "0.1000"
    assert entry.details["new_rate"] == "0.1200"
    assert entry.details["reason"] == "Quarterly review"
    assert entry.ip_address == "10.0.0.1"
    assert list(get_commission_history()) == [entry]


@pytest.mark.django_db
@pytest.mark.parametrize("reason", [None, "", "   "])
def test_rate_change_requires_reason(admin_user, reason):
    with pytest.raises(InvalidArgument) as excinfo:
        update_commission_rate("0.12", admin_user, reason)
    assert excinfo.value.field == "reason"
    assert not AuditLog.objects.exists()


@pytest.mark.django_db
@pytest.mark.parametrize("rate", ["1.5", "-0.1", "abc", ""])
def test_rate_change_rejects_invalid_rate(admin_user, rate):
    with pytest.raises(InvalidArgument) as excinfo:
        update_commission_rate(rate, admin_user, "Because")
    assert excinfo.value.field == "rate"
    assert get_current_commission_rate() == Decimal("0.10")


@pytest.mark.django_db
def test_total_commission_collected_counts_released_payments(released_payment):
    released_payment(amount=100000)
    released_payment(amount=250000)

    assert get_total_commission_collected() == 10000 + 25000


@pytest.mark.django_db
def test_rate_endpoint_requires_admin(api_client, landlord):
    api_client.force_authenticate(landlord)
    assert api_client.get("/api/commission/rate/").status_code == 403


@pytest.mark.django_db
def test_rate_endpoint_updates_rate(api_client, admin_user):
    api_client.force_authenticate(admin_user)

    response = api_client.put("/api/commission/rate/", {"rate": "0.15", "reason": "Market change"}, format="json")

    assert response.status_code == 200, response.data
    assert response.data["new_rate"] == "0.1500"
    assert api_client.get("/api/commission/rate/").data["commission_rate"] == "0.1500"


@pytest.mark.django_db
def test_rate_endpoint_reports_field_errors(api_client, admin_user):
    api_client.force_authenticate(admin_user)

    response = api_client.put("/api/commission/rate/", {"rate": "0.15"}, format="json")

    assert response.status_code == 400
    assert "reason" in response.data


@pytest.mark.django_db
def test_stats_endpoint(api_client, admin_user, released_payment):
    released_payment(amount=100000)
    api_client.force_authenticate(admin_user)

    response = api_client.get("/api/commission/stats/")

    assert response.status_code == 200
    assert response.data["total_commission_collected"] == 10000
