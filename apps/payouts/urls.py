from rest_framework.routers import SimpleRouter

from .views import PayoutRequestViewSet

router = SimpleRouter()
router.register("", PayoutRequestViewSet, basename="payout")

urlpatterns = router.urls
