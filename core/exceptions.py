"""
Domain errors shared by the settlement apps and their rendering for the API.

Services raise these; views let them propagate and
`domain_exception_handler` turns them into JSON responses.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


class DomainError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def as_payload(self) -> dict:
        return {"detail": str(self)}


class InvalidArgument(DomainError, ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field

    def as_payload(self) -> dict:
        return {self.field: [str(self)]}


class NotALandlord(DomainError):
    pass


class PayoutNotAllowed(DomainError):
    def __init__(self, reasons: list[str]) -> None:
        super().__init__(", ".join(reasons))
        self.reasons = list(reasons)

    def as_payload(self) -> dict:
        return {"detail": "Payout request not allowed", "reasons": self.reasons}


class InsufficientFunds(DomainError):
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(DomainError):
    status_code = status.HTTP_409_CONFLICT


class LedgerInconsistency(DomainError):
    status_code = status.HTTP_409_CONFLICT


class PaymentRailError(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        return Response(exc.as_payload(), status=exc.status_code)
    return exception_handler(exc, context)
