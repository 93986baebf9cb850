from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction

from .models import Notification

logger = logging.getLogger(__name__)


def notify(user, kind: str, title: str, body: str, send_email: bool = True) -> Notification:
    notification = Notification.objects.create(user=user, kind=kind, title=title, body=body)
    if send_email and user.email:
        send_mail(title, body, settings.DEFAULT_FROM_EMAIL, [user.email])
    return notification


def notify_admins(kind: str, title: str, body: str) -> int:
    admins = get_user_model().objects.filter(role="admin", is_active=True)
    count = 0
    for admin in admins:
        try:
            notify(admin, kind, title, body)
            count += 1
        except Exception:  # noqa: BLE001
            logger.exception("Failed to notify admin %s", admin.pk)
    return count


def dispatch_after_commit(task, *args) -> None:
    """
    Queue a notification task once the surrounding transaction commits.

    Delivery is best-effort: a broker or task failure is logged and never
    reaches the caller, whose financial write has already committed.
    """

    def _send():
        try:
            task.delay(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to dispatch %s%r", getattr(task, "name", task), args)

    transaction.on_commit(_send)
