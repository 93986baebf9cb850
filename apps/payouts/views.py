from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authentication.permissions import IsAdmin, IsLandlord

from .models import PayoutRequest
from .serializers import (
    PayoutCreateSerializer,
    PayoutReasonSerializer,
    PayoutReferenceSerializer,
    PayoutRequestSerializer,
    PayoutReviewSerializer,
)
from .services import (
    approve_payout_request,
    cancel_payout_request,
    create_payout_request,
    mark_payout_completed,
    mark_payout_failed,
    process_payout,
    reject_payout_request,
)

ADMIN_ACTIONS = ("approve", "reject", "process", "complete", "fail", "pending")
LANDLORD_ACTIONS = ("request_payout", "cancel")


class PayoutRequestViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PayoutRequestSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "payment_method"]

    def get_queryset(self):
        user = self.request.user
        qs = PayoutRequest.objects.select_related("landlord").prefetch_related("related_payments")
        if user.role == "admin":
            return qs
        return qs.filter(landlord=user)

    def get_permissions(self):
        if self.action in ADMIN_ACTIONS:
            return [permissions.IsAuthenticated(), IsAdmin()]
        if self.action in LANDLORD_ACTIONS:
            return [permissions.IsAuthenticated(), IsLandlord()]
        return super().get_permissions()

    @action(detail=False, methods=["post"], url_path="request")
    def request_payout(self, request):
        serializer = PayoutCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        amount = data.pop("amount")
        method = data.pop("payment_method")
        payout = create_payout_request(request.user, amount, method, data)
        return Response(PayoutRequestSerializer(payout).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        payout = cancel_payout_request(self.get_object(), request.user)
        return Response(PayoutRequestSerializer(payout).data)

    @action(detail=False, methods=["get"])
    def pending(self, request):
        qs = self.get_queryset().filter(status="pending").order_by("requested_at")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        serializer = PayoutReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = approve_payout_request(self.get_object(), request.user, serializer.validated_data["notes"])
        return Response(PayoutRequestSerializer(payout).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = PayoutReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = reject_payout_request(self.get_object(), request.user, serializer.validated_data["reason"])
        return Response(PayoutRequestSerializer(payout).data)

    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        serializer = PayoutReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = process_payout(
            self.get_object(),
            request.user,
            transfer_reference=serializer.validated_data.get("transfer_reference"),
        )
        return Response(PayoutRequestSerializer(payout).data)

    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        serializer = PayoutReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = mark_payout_completed(
            self.get_object(),
            request.user,
            transfer_reference=serializer.validated_data.get("transfer_reference"),
        )
        return Response(PayoutRequestSerializer(payout).data)

    @action(detail=True, methods=["post"])
    def fail(self, request, pk=None):
        serializer = PayoutReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout = mark_payout_failed(self.get_object(), request.user, serializer.validated_data["reason"])
        return Response(PayoutRequestSerializer(payout).data)
