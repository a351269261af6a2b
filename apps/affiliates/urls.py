from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import (
    AdminAffiliateViewSet,
    AffiliateMeView,
    AffiliateOrdersView,
    AffiliateProfileView,
    AffiliateSignupView,
    AffiliateTierViewSet,
    ValidateCodeView,
)

router = DefaultRouter()
router.register("admin", AdminAffiliateViewSet, basename="admin-affiliate")
router.register("tiers", AffiliateTierViewSet, basename="affiliate-tier")

urlpatterns = router.urls + [
    path("validate/", ValidateCodeView.as_view(), name="affiliate-validate"),
    path("signup/", AffiliateSignupView.as_view(), name="affiliate-signup"),
    path("me/", AffiliateMeView.as_view(), name="affiliate-me"),
    path("me/orders/", AffiliateOrdersView.as_view(), name="affiliate-me-orders"),
    path("me/profile/", AffiliateProfileView.as_view(), name="affiliate-me-profile"),
]
