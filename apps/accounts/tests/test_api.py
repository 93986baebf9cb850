import pytest


@pytest.mark.django_db
def test_balance_endpoint(api_client, landlord, released_payment):
    released_payment(amount=100000)
    api_client.force_authenticate(landlord)

    response = api_client.get("/api/accounts/balance/")

    assert response.status_code == 200
    assert response.data["available_balance"] == 90000
    assert response.data["total_commission_paid"] == 10000


@pytest.mark.django_db
def test_earnings_endpoint(api_client, landlord, released_payment):
    released_payment(amount=100000)
    api_client.force_authenticate(landlord)

    response = api_client.get("/api/accounts/earnings/")

    assert response.status_code == 200
    assert response.data["payment_count"] == 1
    assert response.data["payments"][0]["net_amount"] == 90000


@pytest.mark.django_db
def test_earnings_endpoint_validates_dates(api_client, landlord):
    api_client.force_authenticate(landlord)

    response = api_client.get("/api/accounts/earnings/", {"start_date": "yesterday"})

    assert response.status_code == 400
    assert "start_date" in response.data


@pytest.mark.django_db
def test_clients_have_no_balance(api_client, tenant):
    api_client.force_authenticate(tenant)
    assert api_client.get("/api/accounts/balance/").status_code == 403
