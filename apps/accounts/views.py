from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authentication.permissions import IsLandlord

from .serializers import EarningsQuerySerializer
from .services import get_account_balance, get_earnings_breakdown


class AccountBalanceView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsLandlord]

    def get(self, request, *args, **kwargs):
        return Response(get_account_balance(request.user))


class EarningsBreakdownView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsLandlord]

    def get(self, request, *args, **kwargs):
        query = EarningsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        breakdown = get_earnings_breakdown(
            request.user,
            query.validated_data.get("start_date"),
            query.validated_data.get("end_date"),
        )
        return Response(breakdown)
