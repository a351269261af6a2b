from __future__ import annotations

import logging
from typing import Callable

from django.db import DatabaseError
from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


class ActivityLogMiddleware:
    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        response = self.get_response(request)
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return response

        from apps.analytics.models import ActivityLog

        resolver_match = getattr(request, "resolver_match", None)
        try:
            ActivityLog.objects.create(
                user=user,
                action=request.path[:100],
                entity_type=resolver_match.view_name if resolver_match else None,
                ip_address=request.META.get("REMOTE_ADDR"),
                user_agent=request.META.get("HTTP_USER_AGENT", ""),
                metadata={
                    "method": request.method,
                    "status_code": response.status_code,
                },
            )
        except DatabaseError:
            # Activity logging must never break the request cycle.
            logger.warning("Failed to record activity for %s %s", request.method, request.path, exc_info=True)
        return response
