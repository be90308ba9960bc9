"""Models for goals, indicators, yearly targets and indicator data entries."""
from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q, Value
from django.db.models.functions import Coalesce

from core.models import TimeStampedModel
from strategy.choices import (
    Aggregation,
    CalculationMethod,
    EntryStatus,
    MeasurementFrequency,
)


class Goal(TimeStampedModel):
    """A strategic goal; owns the indicators it is measured by."""

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="goals",
        verbose_name="organisation",
    )
    department = models.ForeignKey(
        "organizations.Department",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="goals",
        verbose_name="direction responsable",
    )
    code = models.CharField("code", max_length=50)
    title = models.CharField("intitule", max_length=255)

    class Meta:
        verbose_name = "objectif"
        verbose_name_plural = "objectifs"
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                name="uniq_goal_code_per_org",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} - {self.title}"


class Indicator(TimeStampedModel):
    """A measured quantity attached to a goal."""

    goal = models.ForeignKey(
        Goal,
        on_delete=models.PROTECT,
        related_name="indicators",
        verbose_name="objectif",
    )
    code = models.CharField("code", max_length=50)
    name = models.CharField("nom", max_length=255)
    unit = models.CharField("unite", max_length=50, blank=True, default="")
    calculation_method = models.CharField(
        "methode de calcul",
        max_length=30,
        choices=CalculationMethod.choices,
        default=CalculationMethod.CUMULATIVE,
    )
    baseline_value = models.DecimalField(
        "valeur de reference",
        max_digits=18,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Vide = 0.",
    )
    target_value = models.DecimalField(
        "cible par defaut",
        max_digits=18,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Utilisee quand aucune cible annuelle n'est definie.",
    )
    measurement_frequency = models.CharField(
        "frequence de mesure",
        max_length=20,
        choices=MeasurementFrequency.choices,
        default=MeasurementFrequency.QUARTERLY,
    )
    aggregation = models.CharField(
        "agregation des periodes",
        max_length=10,
        choices=Aggregation.choices,
        default=Aggregation.SUM,
        help_text="Pour les methodes maintien/pourcentage uniquement.",
    )
    goal_impact_percentage = models.DecimalField(
        "poids dans l'objectif (%)",
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )

    class Meta:
        verbose_name = "indicateur"
        verbose_name_plural = "indicateurs"
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["goal", "code"],
                name="uniq_indicator_code_per_goal",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"


class YearlyTarget(TimeStampedModel):
    """Per-year override of an indicator's default target."""

    indicator = models.ForeignKey(
        Indicator,
        on_delete=models.CASCADE,
        related_name="yearly_targets",
        verbose_name="indicateur",
    )
    year = models.PositiveSmallIntegerField(
        "annee",
        validators=[MinValueValidator(2000), MaxValueValidator(2100)],
    )
    target_value = models.DecimalField(
        "cible",
        max_digits=18,
        decimal_places=4,
        null=True,
        blank=True,
    )

    class Meta:
        verbose_name = "cible annuelle"
        verbose_name_plural = "cibles annuelles"
        ordering = ["indicator", "year"]
        constraints = [
            models.UniqueConstraint(
                fields=["indicator", "year"],
                name="uniq_yearly_target_per_indicator",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.indicator.code} {self.year}: {self.target_value}"


class DataEntry(TimeStampedModel):
    """One measurement submitted for an indicator and a period.

    The value is frozen once the entry leaves ``draft``; status and audit
    fields only change through ``approvals.services``.
    """

    Status = EntryStatus

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.PROTECT,
        related_name="data_entries",
        verbose_name="organisation",
    )
    indicator = models.ForeignKey(
        Indicator,
        on_delete=models.PROTECT,
        related_name="data_entries",
        verbose_name="indicateur",
    )
    value = models.DecimalField("valeur", max_digits=18, decimal_places=4)
    period_year = models.PositiveSmallIntegerField(
        "annee",
        validators=[MinValueValidator(2000), MaxValueValidator(2100)],
    )
    period_quarter = models.PositiveSmallIntegerField(
        "trimestre",
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(4)],
    )
    period_month = models.PositiveSmallIntegerField(
        "mois",
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    status = models.CharField(
        "statut",
        max_length=20,
        choices=EntryStatus.choices,
        default=EntryStatus.DRAFT,
        db_index=True,
    )
    notes = models.TextField("notes", blank=True, default="")
    entered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="data_entries",
        verbose_name="saisi par",
    )
    submitted_at = models.DateTimeField("soumise le", null=True, blank=True)

    # ------------------------------------------------------------------
    # Approval audit
    # ------------------------------------------------------------------
    director_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="director_approved_entries",
        verbose_name="valide par le directeur",
    )
    director_approved_at = models.DateTimeField("validee par le directeur le", null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_entries",
        verbose_name="examinee par",
    )
    reviewed_at = models.DateTimeField("examinee le", null=True, blank=True)
    rejection_reason = models.TextField("motif de rejet", blank=True, default="")

    class Meta:
        verbose_name = "saisie d'indicateur"
        verbose_name_plural = "saisies d'indicateur"
        ordering = ["indicator", "period_year", "period_quarter", "period_month", "created_at"]
        indexes = [
            models.Index(
                fields=["indicator", "period_year", "status"],
                name="entry_indicator_year_status",
            ),
            models.Index(
                fields=["organization", "status"],
                name="entry_org_status_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(period_quarter__isnull=True) | Q(period_month__isnull=True),
                name="entry_single_granularity",
            ),
            # At most one non-rejected entry per indicator period.
            models.UniqueConstraint(
                "indicator",
                "period_year",
                Coalesce("period_quarter", Value(0)),
                Coalesce("period_month", Value(0)),
                condition=~Q(status=EntryStatus.REJECTED),
                name="entry_one_live_per_period",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.indicator.code} {self.period_label}: {self.value} ({self.status})"

    @property
    def period_label(self) -> str:
        if self.period_month:
            return f"{self.period_year}-{self.period_month:02d}"
        if self.period_quarter:
            return f"{self.period_year}-T{self.period_quarter}"
        return str(self.period_year)

    def clean(self) -> None:
        if self.period_quarter is not None and self.period_month is not None:
            raise ValidationError(
                "Une saisie est trimestrielle ou mensuelle, pas les deux."
            )
