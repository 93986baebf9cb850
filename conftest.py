import hashlib
import hmac
import itertools
import json
import time
from datetime import date

import pytest
from django.conf import settings
from django.utils import timezone
from rest_framework.test import APIClient

from apps.applications.models import Application
from apps.authentication.models import User

_session_ids = itertools.count(1)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@rentflow.test",
        password="AdminPass123",
        first_name="Ada",
        role="admin",
    )


@pytest.fixture
def landlord(db):
    return User.objects.create_user(
        email="landlord@rentflow.test",
        password="LandlordPass123",
        first_name="Lola",
        last_name="Adeyemi",
        role="landlord",
        kyc_status="verified",
        kyc_verified_at=timezone.now(),
        stripe_account_id="acct_landlord_1",
        bank_name="Zenith Bank",
        account_number="0123456789",
        account_name="Lola Adeyemi",
    )


@pytest.fixture
def tenant(db):
    return User.objects.create_user(
        email="tenant@rentflow.test",
        password="TenantPass123",
        first_name="Tunde",
        role="client",
    )


@pytest.fixture
def application(tenant, landlord):
    return Application.objects.create(
        client=tenant,
        landlord=landlord,
        property_title="2 Bedroom Flat, Lekki Phase 1",
        status="approved",
        lease_length_months=12,
        move_in_date=date(2026, 1, 1),
        reviewed_at=timezone.now(),
    )


@pytest.fixture
def pending_application(tenant, landlord):
    return Application.objects.create(
        client=tenant,
        landlord=landlord,
        property_title="Studio Apartment, Yaba",
        status="pending",
    )


@pytest.fixture
def checkout_session():
    """Build a `checkout.session.completed` object for an application."""

    def _build(application, amount=100000, session_id=None, intent_type=None, payment_intent=None, currency="ngn"):
        number = next(_session_ids)
        metadata = {"applicationId": str(application.pk), "userId": str(application.client_id)}
        if intent_type:
            metadata["type"] = intent_type
        return {
            "id": session_id or f"cs_test_{number}",
            "object": "checkout.session",
            "payment_intent": payment_intent or f"pi_test_{number}",
            "amount_total": amount,
            "currency": currency,
            "metadata": metadata,
        }

    return _build


@pytest.fixture
def webhook_event():
    def _build(event_type, obj, event_id=None):
        return {
            "id": event_id or f"evt_{obj.get('id')}_{event_type}",
            "type": event_type,
            "data": {"object": obj},
        }

    return _build


@pytest.fixture
def post_signed_webhook(api_client):
    """POST an event to the webhook endpoint with a valid Stripe-Signature header."""

    def _post(event, secret=None, timestamp=None):
        body = json.dumps(event).encode("utf-8")
        ts = str(timestamp or int(time.time()))
        signed = f"{ts}.".encode("utf-8") + body
        digest = hmac.new((secret or settings.STRIPE_WEBHOOK_SECRET).encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return api_client.post(
            "/api/payments/webhook/",
            data=body,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=f"t={ts},v1={digest}",
        )

    return _post


@pytest.fixture
def released_payment(application, admin_user, checkout_session):
    """Ingest a rent payment, satisfy both release conditions and release it."""
    from apps.payments.escrow import confirm_documents_received, confirm_property_visit, release_escrow
    from apps.payments.webhooks import handle_checkout_session_completed

    def _release(amount=10_000_000, target=None):
        payment = handle_checkout_session_completed(checkout_session(target or application, amount=amount, intent_type="rent"))
        confirm_property_visit(payment, admin_user)
        confirm_documents_received(payment, admin_user)
        return release_escrow(payment, admin_user)

    return _release
