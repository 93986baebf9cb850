from unittest.mock import patch

import pytest
from django.core import mail

from apps.notifications.models import Notification
from apps.notifications.services import dispatch_after_commit
from apps.notifications.tasks import send_expired_escrow_alert, send_payment_received


@pytest.mark.django_db
def test_payment_received_notifies_both_parties_and_admins(application, admin_user, checkout_session):
    from apps.payments.webhooks import handle_checkout_session_completed

    payment = handle_checkout_session_completed(checkout_session(application, intent_type="rent"))

    send_payment_received(str(payment.pk))

    assert Notification.objects.filter(user=application.client, kind="payment_success").count() == 1
    assert Notification.objects.filter(user=application.landlord, kind="payment_received").count() == 1
    assert Notification.objects.filter(user=admin_user, kind="payment_received").count() == 1
    assert "escrow" in Notification.objects.get(user=application.client).body
    assert len(mail.outbox) == 3


@pytest.mark.django_db
def test_unknown_payment_is_ignored():
    send_payment_received("00000000-0000-0000-0000-000000000000")
    assert not Notification.objects.exists()


@pytest.mark.django_db
def test_expired_escrow_alert_goes_to_admins(admin_user):
    assert send_expired_escrow_alert(["a", "b"]) == 1
    assert Notification.objects.get(user=admin_user).kind == "escrow_expired"
    assert send_expired_escrow_alert([]) == 0


@pytest.mark.django_db
def test_dispatch_failure_is_logged_not_raised(django_capture_on_commit_callbacks):
    class BrokenTask:
        name = "broken"

        def delay(self, *args):
            raise ConnectionError("broker down")

    with patch("apps.notifications.services.logger") as logger:
        with django_capture_on_commit_callbacks(execute=True):
            dispatch_after_commit(BrokenTask(), "x")

    logger.exception.assert_called_once()
