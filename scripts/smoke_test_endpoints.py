from __future__ import annotations

import hashlib
import hmac
import json
import time

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from apps.accounts.models import LandlordAccount
from apps.applications.models import Application
from apps.notifications.models import Notification
from apps.payments.models import Payment, WebhookEvent
from apps.payouts.models import PayoutRequest


def _print(title: str, data) -> None:
    print(f"\n=== {title} ===")
    if isinstance(data, (dict, list)):
        print(json.dumps(data, indent=2, default=str))
    else:
        print(data)


def _signed_post(client: APIClient, event: dict):
    body = json.dumps(event).encode("utf-8")
    ts = str(int(time.time()))
    digest = hmac.new(
        settings.STRIPE_WEBHOOK_SECRET.encode("utf-8"),
        f"{ts}.".encode("utf-8") + body,
        hashlib.sha256,
    ).hexdigest()
    return client.post(
        "/api/payments/webhook/",
        data=body,
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=f"t={ts},v1={digest}",
    )


def run() -> None:
    """
    Manual smoke test walking one rent payment from webhook to payout.

    Run with:
      python manage.py shell --settings=config.settings.testing -c "from scripts.smoke_test_endpoints import run; run()"
    """
    User = get_user_model()

    # Clean tables for a deterministic run; PROTECT references go first.
    Payment.objects.all().delete()
    PayoutRequest.objects.all().delete()
    LandlordAccount.objects.all().delete()
    Application.objects.all().delete()
    WebhookEvent.objects.all().delete()
    Notification.objects.all().delete()
    User.objects.filter(email__endswith="@example.com").delete()

    admin = User.objects.create_superuser(
        email="admin@example.com",
        password="Admin123!",
        first_name="Admin",
    )
    landlord = User.objects.create_user(
        email="landlord@example.com",
        password="Landlord123!",
        first_name="Landlord",
        role="landlord",
        kyc_status="verified",
        kyc_verified_at=timezone.now(),
        stripe_account_id="acct_smoke_landlord",
    )
    tenant = User.objects.create_user(
        email="tenant@example.com",
        password="Tenant123!",
        first_name="Tenant",
        role="client",
    )
    application = Application.objects.create(
        client=tenant,
        landlord=landlord,
        property_title="3 Bedroom Terrace, Ikeja GRA",
        status="approved",
        lease_length_months=12,
        move_in_date=timezone.localdate(),
        reviewed_at=timezone.now(),
    )
    _print("Users created", {"admin": admin.email, "landlord": landlord.email, "tenant": tenant.email})

    def get_token(email: str, password: str) -> str:
        client = APIClient()
        resp = client.post("/api/auth/login/", {"email": email, "password": password}, format="json")
        _print(f"Token response for {email}", {"status": resp.status_code})
        assert resp.status_code == 200, resp.content
        return resp.data["access"]

    admin_client = APIClient()
    admin_client.credentials(HTTP_AUTHORIZATION=f"Bearer {get_token('admin@example.com', 'Admin123!')}")
    landlord_client = APIClient()
    landlord_client.credentials(HTTP_AUTHORIZATION=f"Bearer {get_token('landlord@example.com', 'Landlord123!')}")

    # Rent checkout delivered twice; only one payment must exist afterwards.
    event = {
        "id": "evt_smoke_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_smoke_1",
                "payment_intent": "pi_smoke_1",
                "amount_total": 60_000_000,
                "currency": "ngn",
                "metadata": {"applicationId": str(application.pk), "userId": str(tenant.pk), "type": "rent"},
            }
        },
    }
    webhook_client = APIClient()
    for attempt in (1, 2):
        resp = _signed_post(webhook_client, event)
        _print(f"Stripe checkout webhook (delivery {attempt})", {"status": resp.status_code})
    payment = Payment.objects.get(provider_session_id="cs_smoke_1")
    _print("Payment", {"id": payment.pk, "escrow": payment.escrow_state, "expires": payment.escrow_expires_at})

    for step in ("confirm-visit", "confirm-documents", "release"):
        resp = admin_client.post(f"/api/payments/{payment.pk}/{step}/")
        _print(f"POST /api/payments/<id>/{step}/", {"status": resp.status_code})
        assert resp.status_code == 200, resp.content

    resp = landlord_client.get("/api/accounts/balance/")
    _print("GET /api/accounts/balance/", {"status": resp.status_code, "data": resp.data})
    available = resp.data["available_balance"]

    resp = landlord_client.post("/api/payouts/request/", {"amount": available}, format="json")
    _print("POST /api/payouts/request/", {"status": resp.status_code, "data": resp.data})
    assert resp.status_code == 201, resp.content
    payout_id = resp.data["id"]

    resp = admin_client.post(f"/api/payouts/{payout_id}/approve/", {"notes": "Smoke test"}, format="json")
    _print("POST /api/payouts/<id>/approve/", {"status": resp.status_code})

    resp = admin_client.post(f"/api/payouts/{payout_id}/process/")
    _print("POST /api/payouts/<id>/process/", {"status": resp.status_code, "payout_status": resp.data.get("status")})

    resp = landlord_client.get("/api/accounts/balance/")
    _print("Balance after payout", {"status": resp.status_code, "data": resp.data})

    resp = admin_client.get("/api/commission/stats/")
    _print("GET /api/commission/stats/", {"status": resp.status_code, "data": resp.data})

    _print("Smoke test complete", "OK")
