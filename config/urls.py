from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

from apps.affiliates.views import handle_referral_redirect

schema_view = get_schema_view(
    openapi.Info(title="Affiliate Ledger API", default_version="v1"),
    public=True,
    permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path("admin/", admin.site.urls),
    # Public vanity link for affiliate referral codes
    path("r/<str:code>/", handle_referral_redirect, name="affiliate-referral-redirect"),
    path("api/auth/", include("apps.authentication.urls")),
    path("api/affiliates/", include("apps.affiliates.urls")),
    path("api/orders/", include("apps.orders.urls")),
    path("api/commissions/", include("apps.commissions.urls")),
    path("api/docs/", schema_view.with_ui("swagger", cache_timeout=0), name="api-docs"),
]
