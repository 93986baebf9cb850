"""Stripe REST client; simulates success when no secret key is configured."""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass

import requests
from django.conf import settings

from core.exceptions import PaymentRailError

logger = logging.getLogger(__name__)

TRANSFER_SUCCEEDED = "paid"
TRANSFER_PENDING = "pending"
TRANSFER_FAILED = "failed"
TRANSFER_REVERSED = "reversed"


@dataclass
class TransferResult:
    transfer_id: str
    status: str


def _transfer_status(data: dict) -> str:
    if data.get("reversed"):
        return TRANSFER_REVERSED
    return data.get("status") or TRANSFER_SUCCEEDED


class StripeRail:
    def __init__(self, secret_key: str | None = None, base_url: str | None = None, timeout: int = 20) -> None:
        self.secret_key = settings.STRIPE_SECRET_KEY if secret_key is None else secret_key
        self.base_url = (base_url or settings.STRIPE_API_BASE).rstrip("/")
        self.timeout = timeout

    @property
    def is_simulated(self) -> bool:
        return not self.secret_key

    def _headers(self, idempotency_key: str | None = None) -> dict:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    def _request(self, method: str, path: str, *, data: dict | None = None, idempotency_key: str | None = None) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(
                method,
                url,
                headers=self._headers(idempotency_key),
                data=data,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PaymentRailError(f"Payment provider unreachable: {exc}") from exc

        if resp.status_code not in (200, 201):
            try:
                message = resp.json().get("error", {}).get("message") or resp.text
            except ValueError:
                message = resp.text
            raise PaymentRailError(f"Payment provider error ({resp.status_code}): {message}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise PaymentRailError(f"Payment provider returned an unreadable response: {exc}") from exc
        if not isinstance(data, dict):
            raise PaymentRailError("Payment provider returned an unexpected response")
        return data

    def _object_id(self, data: dict) -> str:
        if not data.get("id"):
            raise PaymentRailError("Payment provider response has no object id")
        return data["id"]

    def initiate_transfer(self, destination: str, amount: int, currency: str, idempotency_key: str) -> TransferResult:
        if self.is_simulated:
            logger.warning("STRIPE_SECRET_KEY not set; simulating transfer %s", idempotency_key)
            return TransferResult(transfer_id=f"tr_test_{idempotency_key}", status=TRANSFER_SUCCEEDED)

        data = self._request(
            "post",
            "/transfers",
            data={
                "amount": amount,
                "currency": currency.lower(),
                "destination": destination,
                "metadata[type]": "landlord_payout",
                "metadata[idempotency_key]": idempotency_key,
            },
            idempotency_key=idempotency_key,
        )
        return TransferResult(transfer_id=self._object_id(data), status=_transfer_status(data))

    def get_transfer_status(self, transfer_id: str) -> str:
        if self.is_simulated:
            return TRANSFER_SUCCEEDED
        return _transfer_status(self._request("get", f"/transfers/{transfer_id}"))

    def create_refund(self, payment_intent_id: str | None, amount: int, idempotency_key: str) -> str:
        if self.is_simulated:
            logger.warning("STRIPE_SECRET_KEY not set; simulating refund %s", idempotency_key)
            return f"re_test_{idempotency_key}"
        if not payment_intent_id:
            raise PaymentRailError("Payment has no provider payment intent to refund")

        data = self._request(
            "post",
            "/refunds",
            data={"payment_intent": payment_intent_id, "amount": amount},
            idempotency_key=idempotency_key,
        )
        return self._object_id(data)


def get_payment_rail() -> StripeRail:
    return StripeRail()


def verify_webhook_signature(payload: bytes, header: str | None, secret: str, tolerance: int | None = None) -> bool:
    """
    Check a `Stripe-Signature` header (`t=<timestamp>,v1=<hex digest>`).

    The digest is HMAC-SHA256 over `"<timestamp>.<raw body>"`.
    """
    if not header or not secret:
        return False
    tolerance = settings.WEBHOOK_TOLERANCE_SECONDS if tolerance is None else tolerance

    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    if not timestamp or not signatures:
        return False

    try:
        ts = int(timestamp)
    except ValueError:
        return False
    if tolerance and abs(time.time() - ts) > tolerance:
        return False

    signed = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return any(hmac.compare_digest(expected, sig) for sig in signatures)
