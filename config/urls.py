from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/", include("apps.authentication.urls")),
    path("api/commission/", include("apps.commissions.urls")),
    path("api/payments/", include("apps.payments.urls")),
    path("api/accounts/", include("apps.accounts.urls")),
    path("api/payouts/", include("apps.payouts.urls")),
    path("api/notifications/", include("apps.notifications.urls")),
]
