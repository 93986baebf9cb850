from django.utils.dateparse import parse_datetime
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authentication.permissions import IsAdmin

from .models import PlatformSettings
from .serializers import CommissionRateUpdateSerializer, PlatformSettingsSerializer, RateChangeLogSerializer
from .services import get_commission_history, get_total_commission_collected, update_commission_rate


def _date_range(request):
    start = request.query_params.get("start_date")
    end = request.query_params.get("end_date")
    return (parse_datetime(start) if start else None, parse_datetime(end) if end else None)


class CommissionRateView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        current = PlatformSettings.objects.get_current()
        return Response(PlatformSettingsSerializer(current).data)

    def put(self, request, *args, **kwargs):
        serializer = CommissionRateUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        change = update_commission_rate(
            serializer.validated_data["rate"],
            request.user,
            serializer.validated_data.get("reason"),
            ip_address=request.META.get("REMOTE_ADDR"),
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
        )
        return Response(
            {
                "message": "Commission rate updated successfully",
                "old_rate": str(change.old_rate),
                "new_rate": str(change.new_rate),
                "effective_from": change.effective_from,
                "reason": change.reason,
                "version": change.version,
            },
            status=status.HTTP_200_OK,
        )


class CommissionHistoryView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        start, end = _date_range(request)
        logs = get_commission_history(start, end)
        return Response(RateChangeLogSerializer(logs, many=True).data)


class CommissionStatsView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def get(self, request, *args, **kwargs):
        start, end = _date_range(request)
        current = PlatformSettings.objects.get_current()
        return Response(
            {
                "current_rate": str(current.commission_rate),
                "total_commission_collected": get_total_commission_collected(start, end),
            }
        )
