from django.urls import path

from .views import CommissionHistoryView, CommissionRateView, CommissionStatsView

urlpatterns = [
    path("rate/", CommissionRateView.as_view(), name="commission-rate"),
    path("history/", CommissionHistoryView.as_view(), name="commission-history"),
    path("stats/", CommissionStatsView.as_view(), name="commission-stats"),
]
