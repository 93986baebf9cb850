from django.urls import path

from .views import AccountBalanceView, EarningsBreakdownView

urlpatterns = [
    path("balance/", AccountBalanceView.as_view(), name="account-balance"),
    path("earnings/", EarningsBreakdownView.as_view(), name="account-earnings"),
]
