from __future__ import annotations

import logging

from django.db import DatabaseError, transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(action: str, entity_type: str, entity_id, details: dict | None = None, actor=None) -> AuditLog | None:
    """
    Best-effort audit entry. A failed insert is logged and swallowed so it
    can never undo the operation being audited.
    """
    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None
    try:
        with transaction.atomic():
            return AuditLog.objects.create(
                actor=actor,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                details=details or {},
            )
    except DatabaseError:
        logger.exception(
            "Audit log insert failed: action=%s entity=%s:%s details=%s",
            action,
            entity_type,
            entity_id,
            details,
        )
        return None
