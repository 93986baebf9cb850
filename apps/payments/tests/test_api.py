import pytest

from apps.applications.models import Application
from apps.authentication.models import User
from apps.payments.webhooks import handle_checkout_session_completed


@pytest.fixture
def other_landlord_payment(tenant, checkout_session):
    other = User.objects.create_user(email="other@rentflow.test", first_name="Obi", role="landlord")
    application = Application.objects.create(
        client=tenant,
        landlord=other,
        property_title="Duplex, Ikoyi",
        status="approved",
    )
    return handle_checkout_session_completed(checkout_session(application))


@pytest.mark.django_db
def test_landlord_sees_only_own_payments(api_client, landlord, application, checkout_session, other_landlord_payment):
    mine = handle_checkout_session_completed(checkout_session(application))
    api_client.force_authenticate(landlord)

    response = api_client.get("/api/payments/")

    assert response.status_code == 200
    assert [item["id"] for item in response.data["results"]] == [str(mine.pk)]
    assert response.data["results"][0]["escrow_state"] == "held"


@pytest.mark.django_db
def test_tenant_sees_own_payments(api_client, tenant, application, checkout_session, other_landlord_payment):
    handle_checkout_session_completed(checkout_session(application))
    api_client.force_authenticate(tenant)

    assert api_client.get("/api/payments/").data["count"] == 2


@pytest.mark.django_db
def test_admin_releases_escrow_over_api(api_client, admin_user, application, checkout_session):
    payment = handle_checkout_session_completed(checkout_session(application, amount=100000))
    api_client.force_authenticate(admin_user)

    blocked = api_client.post(f"/api/payments/{payment.pk}/release/")
    assert blocked.status_code == 409

    assert api_client.post(f"/api/payments/{payment.pk}/confirm-visit/").status_code == 200
    assert api_client.post(f"/api/payments/{payment.pk}/confirm-documents/").status_code == 200
    response = api_client.post(f"/api/payments/{payment.pk}/release/")

    assert response.status_code == 200, response.data
    assert response.data["escrow_state"] == "released"
    assert response.data["commission_amount"] == 10000
    assert response.data["landlord_net_amount"] == 90000


@pytest.mark.django_db
def test_landlord_cannot_release(api_client, landlord, application, checkout_session):
    payment = handle_checkout_session_completed(checkout_session(application))
    api_client.force_authenticate(landlord)

    assert api_client.post(f"/api/payments/{payment.pk}/release/").status_code == 403


@pytest.mark.django_db
def test_refund_requires_reason(api_client, admin_user, application, checkout_session):
    payment = handle_checkout_session_completed(checkout_session(application))
    api_client.force_authenticate(admin_user)

    assert api_client.post(f"/api/payments/{payment.pk}/refund/", {}, format="json").status_code == 400
    response = api_client.post(f"/api/payments/{payment.pk}/refund/", {"reason": "Listing withdrawn"}, format="json")

    assert response.status_code == 200
    assert response.data["status"] == "refunded"
