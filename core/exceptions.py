from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """
    Base class for errors raised by service-layer functions.

    Views never need to catch these: the DRF exception handler below turns
    them into a JSON body with ``detail``, ``code`` and ``retryable``.
    """

    status_code = 400
    default_code = "error"
    retryable = False

    def __init__(self, detail: str, code: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.code = code or self.default_code


class ValidationFailed(ServiceError):
    status_code = 400
    default_code = "invalid"


class NotFoundError(ServiceError):
    status_code = 404
    default_code = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    default_code = "conflict"
    retryable = True


def api_exception_handler(exc, context):
    if isinstance(exc, ServiceError):
        view = context.get("view")
        logger.info(
            "Service error in %s: %s (%s)",
            view.__class__.__name__ if view else "unknown view",
            exc.detail,
            exc.code,
        )
        return Response(
            {"detail": exc.detail, "code": exc.code, "retryable": exc.retryable},
            status=exc.status_code,
        )
    return exception_handler(exc, context)
