"""Service helpers for organizations and the audit journal."""
from __future__ import annotations

from typing import Any

from organizations.models import AuditLog, Organization


def create_audit_log(
    actor,
    organization: Organization | None,
    action: str,
    entity_type: str,
    entity_id: str,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
) -> AuditLog:
    """Create and return a new :class:`~organizations.models.AuditLog` entry."""
    return AuditLog.objects.create(
        actor=actor,
        organization=organization,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        before_json=before,
        after_json=after,
    )


def entity_history(entity_type: str, entity_id) -> list[AuditLog]:
    """Return the audit trail of one entity, oldest first."""
    return list(
        AuditLog.objects
        .filter(entity_type=entity_type, entity_id=str(entity_id))
        .select_related("actor")
        .order_by("created_at", "id")
    )
