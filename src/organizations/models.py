"""Models for organizations, departments and the audit journal."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


def _default_requires_director_review() -> bool:
    return bool(getattr(settings, "APPROVAL_REQUIRE_DIRECTOR_REVIEW", True))


class Organization(TimeStampedModel):
    """A municipality (or agency) that owns a strategic plan."""

    name = models.CharField("nom", max_length=255)
    code = models.CharField("code", max_length=50, unique=True)
    is_active = models.BooleanField("actif", default=True)
    requires_director_review = models.BooleanField(
        "validation directeur obligatoire",
        default=_default_requires_director_review,
        help_text="Si False, les saisies des agents vont directement en validation administrateur.",
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "organisation"
        verbose_name_plural = "organisations"

    def __str__(self):
        return f"{self.name} ({self.code})"


class Department(TimeStampedModel):
    """A service (directorate) inside an organization."""

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="departments",
        verbose_name="organisation",
    )
    name = models.CharField("nom", max_length=255)
    code = models.CharField("code", max_length=50)
    is_active = models.BooleanField("actif", default=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "direction"
        verbose_name_plural = "directions"
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                name="uniq_department_code_per_org",
            ),
        ]

    def __str__(self):
        return self.name


class AuditLog(models.Model):
    """Immutable log of every significant action in the system."""

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    action = models.CharField(max_length=100)
    entity_type = models.CharField(max_length=100, db_index=True)
    entity_id = models.CharField(max_length=255)
    before_json = models.JSONField(null=True, blank=True)
    after_json = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Journal d'audit"
        verbose_name_plural = "Journaux d'audit"
        indexes = [
            models.Index(fields=["organization", "created_at"], name="audit_org_created_idx"),
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at}] {self.action} on {self.entity_type} #{self.entity_id}"
