import json
import logging

from django.conf import settings
from django.db.models import Q
from rest_framework import mixins, permissions, status, views, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authentication.permissions import IsAdmin

from .escrow import confirm_documents_received, confirm_property_visit, refund_escrow, release_escrow
from .models import Payment, WebhookEvent
from .rail import verify_webhook_signature
from .serializers import EscrowRefundSerializer, PaymentSerializer
from .webhooks import dispatch_event

logger = logging.getLogger(__name__)


class StripeWebhookView(views.APIView):
    authentication_classes = []
    permission_classes = [permissions.AllowAny]
    throttle_classes = []

    def post(self, request, *args, **kwargs):
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook")
            return Response({"detail": "Webhook secret not configured."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        payload = request.body
        if not verify_webhook_signature(payload, request.META.get("HTTP_STRIPE_SIGNATURE"), secret):
            return Response({"detail": "Invalid signature."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            event = json.loads(payload)
        except ValueError:
            event = None
        if not isinstance(event, dict):
            return Response({"detail": "Invalid payload."}, status=status.HTTP_400_BAD_REQUEST)

        event_id = event.get("id")
        if event_id:
            # Persist raw webhook for audit/debugging
            WebhookEvent.objects.get_or_create(
                event_id=event_id,
                defaults={"provider": "stripe", "event_type": event.get("type") or "", "raw_payload": event},
            )

        try:
            dispatch_event(event)
        except Exception:
            logger.exception("Webhook handler failed for event %s (%s)", event_id, event.get("type"))
            return Response({"detail": "Webhook processing failed."}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({"received": True}, status=status.HTTP_200_OK)


class PaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status", "payment_type", "escrow_status", "application"]
    ordering_fields = ["created_at", "amount"]

    def get_queryset(self):
        user = self.request.user
        qs = Payment.objects.select_related("application")
        if user.role == "admin":
            return qs
        if user.role == "landlord":
            return qs.filter(application__landlord=user)
        return qs.filter(Q(user=user) | Q(application__client=user))

    def get_permissions(self):
        if self.action in ("confirm_visit", "confirm_documents", "release", "refund"):
            return [permissions.IsAuthenticated(), IsAdmin()]
        return super().get_permissions()

    @action(detail=True, methods=["post"], url_path="confirm-visit")
    def confirm_visit(self, request, pk=None):
        payment = confirm_property_visit(self.get_object(), request.user)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=["post"], url_path="confirm-documents")
    def confirm_documents(self, request, pk=None):
        payment = confirm_documents_received(self.get_object(), request.user)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=["post"])
    def release(self, request, pk=None):
        payment = release_escrow(self.get_object(), request.user)
        return Response(PaymentSerializer(payment).data)

    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        serializer = EscrowRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = refund_escrow(self.get_object(), request.user, serializer.validated_data["reason"])
        return Response(PaymentSerializer(payment).data)
