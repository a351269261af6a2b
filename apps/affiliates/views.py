import logging

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from django.shortcuts import redirect
from django.utils import timezone
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.analytics.services import record_audit
from apps.authentication.permissions import IsAdmin, IsAffiliate
from core.exceptions import NotFoundError

from .attribution import capture_campaign, capture_referral, find_eligible_affiliate
from .models import Affiliate, AffiliateTier
from .reports import admin_affiliate_stats, affiliate_dashboard, order_history
from .serializers import (
    AdminAffiliateSerializer,
    AffiliateProfileSerializer,
    AffiliateSignupSerializer,
    AffiliateTierSerializer,
    ToggleStatusSerializer,
)
from .services import register_affiliate, toggle_affiliate_active

logger = logging.getLogger(__name__)


def handle_referral_redirect(request: HttpRequest, code: str) -> HttpResponse:
    """
    Vanity link ``/r/<code>/``. Always lands on the configured storefront
    path; the code only ever ends up in the attribution cookie.
    """
    response = redirect(settings.AFFILIATE_REDIRECT_PATH)
    if capture_referral(request, response, code):
        logger.info("Attribution cookie set for code %s", code.upper())
    capture_campaign(request, response)
    return response


def current_affiliate(request: Request, require_active: bool = True) -> Affiliate:
    affiliate = Affiliate.objects.filter(user=request.user).first()
    if affiliate is None:
        raise NotFoundError("Affiliate profile not found for this account", code="affiliate_not_found")
    if require_active and not affiliate.active:
        raise PermissionDenied("Affiliate account is not active")
    return affiliate


class ValidateCodeView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []

    def get(self, request):
        affiliate = find_eligible_affiliate(request.query_params.get("code"))
        return Response({"ok": True, "valid": affiliate is not None})


class AffiliateSignupView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes: list = []
    throttle_scope = "affiliate_signup"

    def post(self, request):
        serializer = AffiliateSignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        affiliate = register_affiliate(**serializer.validated_data)
        return Response(
            {
                "ok": True,
                "affiliate": {"id": affiliate.id, "code": affiliate.code, "active": affiliate.active},
            },
            status=status.HTTP_201_CREATED,
        )


class AffiliateMeView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAffiliate]

    def get(self, request):
        affiliate = current_affiliate(request)
        return Response({"ok": True, **affiliate_dashboard(affiliate, timezone.now())})


class AffiliateOrdersView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAffiliate]

    def get(self, request):
        affiliate = current_affiliate(request)
        params = request.query_params
        data = order_history(
            affiliate,
            range_name=params.get("range"),
            page=params.get("page", 1),
            limit=params.get("limit", 20),
            now=timezone.now(),
        )
        return Response({"ok": True, **data})


class AffiliateProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAffiliate]

    def patch(self, request):
        affiliate = current_affiliate(request, require_active=False)
        serializer = AffiliateProfileSerializer(affiliate, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save(profile_updated_at=timezone.now())
        logger.info("Affiliate %s updated profile fields %s", affiliate.code, sorted(serializer.validated_data))
        return Response({"ok": True, "profile": serializer.data})


class AdminAffiliateViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Operator listing with per-affiliate stats, status/rate edits and the
    approve/deactivate toggle.
    """

    queryset = Affiliate.objects.all()
    serializer_class = AdminAffiliateSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filterset_fields = ["active", "status", "city"]
    search_fields = ["name", "email", "code", "phone", "parlour_name"]
    ordering_fields = ["created_at", "name", "strike_count"]
    http_method_names = ["get", "patch", "post", "head", "options"]

    def _with_stats(self, affiliates):
        context = self.get_serializer_context()
        context["stats"] = admin_affiliate_stats([a.id for a in affiliates], timezone.now())
        return self.get_serializer(affiliates, many=True, context=context)

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self._with_stats(page).data)
        return Response(self._with_stats(list(queryset)).data)

    def retrieve(self, request, *args, **kwargs):
        affiliate = self.get_object()
        context = self.get_serializer_context()
        context["stats"] = admin_affiliate_stats([affiliate.id], timezone.now())
        return Response(self.get_serializer(affiliate, context=context).data)

    def perform_update(self, serializer):
        before = {field: getattr(serializer.instance, field) for field in ("status", "commission_rate")}
        affiliate = serializer.save()
        changes = {
            field: {"from": str(old), "to": str(getattr(affiliate, field))}
            for field, old in before.items()
            if getattr(affiliate, field) != old
        }
        if changes:
            logger.info("Affiliate %s updated by %s: %s", affiliate.code, self.request.user.email, changes)
            record_audit(
                action="affiliate_updated",
                entity_type="affiliate",
                entity_id=affiliate.id,
                actor=self.request.user,
                details=changes,
            )

    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request: Request, pk=None) -> Response:
        affiliate = self.get_object()
        serializer = ToggleStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        active = toggle_affiliate_active(
            affiliate,
            reason=serializer.validated_data.get("reason"),
            notes=serializer.validated_data.get("notes"),
            actor=request.user,
        )
        return Response({"ok": True, "active": active})


class AffiliateTierViewSet(viewsets.ModelViewSet):
    queryset = AffiliateTier.objects.all()
    serializer_class = AffiliateTierSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    pagination_class = None
