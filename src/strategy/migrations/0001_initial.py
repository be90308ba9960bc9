import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

CALCULATION_METHODS = [
    ("cumulative", "Cumulatif croissant"),
    ("increasing", "Croissant"),
    ("cumulative_increasing", "Cumulatif croissant (alias)"),
    ("standard", "Standard"),
    ("cumulative_decreasing", "Cumulatif decroissant"),
    ("decreasing", "Decroissant"),
    ("maintenance", "Maintien"),
    ("maintenance_increasing", "Maintien croissant"),
    ("maintenance_decreasing", "Maintien decroissant"),
    ("percentage", "Pourcentage"),
    ("percentage_increasing", "Pourcentage croissant"),
    ("percentage_decreasing", "Pourcentage decroissant"),
]

ENTRY_STATUSES = [
    ("draft", "Brouillon"),
    ("pending_director", "En attente du directeur"),
    ("pending_admin", "En attente de l'administrateur"),
    ("approved", "Approuvee"),
    ("rejected", "Rejetee"),
    ("submitted", "Soumise (provisoire)"),
]


def _timestamps():
    return [
        ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="cree le")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="modifie le")),
    ]


def _year_field(verbose_name):
    return models.PositiveSmallIntegerField(
        validators=[
            django.core.validators.MinValueValidator(2000),
            django.core.validators.MaxValueValidator(2100),
        ],
        verbose_name=verbose_name,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Goal",
            fields=_timestamps() + [
                ("code", models.CharField(max_length=50, verbose_name="code")),
                ("title", models.CharField(max_length=255, verbose_name="intitule")),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="goals",
                        to="organizations.organization",
                        verbose_name="organisation",
                    ),
                ),
                (
                    "department",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="goals",
                        to="organizations.department",
                        verbose_name="direction responsable",
                    ),
                ),
            ],
            options={
                "verbose_name": "objectif",
                "verbose_name_plural": "objectifs",
                "ordering": ["code"],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "code"), name="uniq_goal_code_per_org"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Indicator",
            fields=_timestamps() + [
                ("code", models.CharField(max_length=50, verbose_name="code")),
                ("name", models.CharField(max_length=255, verbose_name="nom")),
                ("unit", models.CharField(blank=True, default="", max_length=50, verbose_name="unite")),
                (
                    "calculation_method",
                    models.CharField(
                        choices=CALCULATION_METHODS,
                        default="cumulative",
                        max_length=30,
                        verbose_name="methode de calcul",
                    ),
                ),
                (
                    "baseline_value",
                    models.DecimalField(
                        blank=True, decimal_places=4, help_text="Vide = 0.", max_digits=18, null=True,
                        verbose_name="valeur de reference",
                    ),
                ),
                (
                    "target_value",
                    models.DecimalField(
                        blank=True, decimal_places=4, max_digits=18, null=True,
                        help_text="Utilisee quand aucune cible annuelle n'est definie.",
                        verbose_name="cible par defaut",
                    ),
                ),
                (
                    "measurement_frequency",
                    models.CharField(
                        choices=[
                            ("monthly", "Mensuelle"),
                            ("quarterly", "Trimestrielle"),
                            ("semi_annual", "Semestrielle"),
                            ("annual", "Annuelle"),
                        ],
                        default="quarterly",
                        max_length=20,
                        verbose_name="frequence de mesure",
                    ),
                ),
                (
                    "aggregation",
                    models.CharField(
                        choices=[("sum", "Somme des periodes"), ("latest", "Derniere valeur")],
                        default="sum",
                        help_text="Pour les methodes maintien/pourcentage uniquement.",
                        max_length=10,
                        verbose_name="agregation des periodes",
                    ),
                ),
                (
                    "goal_impact_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                        verbose_name="poids dans l'objectif (%)",
                    ),
                ),
                (
                    "goal",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="indicators",
                        to="strategy.goal",
                        verbose_name="objectif",
                    ),
                ),
            ],
            options={
                "verbose_name": "indicateur",
                "verbose_name_plural": "indicateurs",
                "ordering": ["code"],
                "constraints": [
                    models.UniqueConstraint(fields=("goal", "code"), name="uniq_indicator_code_per_goal"),
                ],
            },
        ),
        migrations.CreateModel(
            name="YearlyTarget",
            fields=_timestamps() + [
                ("year", _year_field("annee")),
                (
                    "target_value",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=18, null=True, verbose_name="cible"),
                ),
                (
                    "indicator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="yearly_targets",
                        to="strategy.indicator",
                        verbose_name="indicateur",
                    ),
                ),
            ],
            options={
                "verbose_name": "cible annuelle",
                "verbose_name_plural": "cibles annuelles",
                "ordering": ["indicator", "year"],
                "constraints": [
                    models.UniqueConstraint(fields=("indicator", "year"), name="uniq_yearly_target_per_indicator"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DataEntry",
            fields=_timestamps() + [
                ("value", models.DecimalField(decimal_places=4, max_digits=18, verbose_name="valeur")),
                ("period_year", _year_field("annee")),
                (
                    "period_quarter",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(4),
                        ],
                        verbose_name="trimestre",
                    ),
                ),
                (
                    "period_month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="mois",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=ENTRY_STATUSES, db_index=True, default="draft", max_length=20, verbose_name="statut",
                    ),
                ),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                ("submitted_at", models.DateTimeField(blank=True, null=True, verbose_name="soumise le")),
                (
                    "director_approved_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="validee par le directeur le"),
                ),
                ("reviewed_at", models.DateTimeField(blank=True, null=True, verbose_name="examinee le")),
                ("rejection_reason", models.TextField(blank=True, default="", verbose_name="motif de rejet")),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="data_entries",
                        to="organizations.organization",
                        verbose_name="organisation",
                    ),
                ),
                (
                    "indicator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="data_entries",
                        to="strategy.indicator",
                        verbose_name="indicateur",
                    ),
                ),
                (
                    "entered_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="data_entries",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="saisi par",
                    ),
                ),
                (
                    "director_approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="director_approved_entries",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="valide par le directeur",
                    ),
                ),
                (
                    "reviewed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_entries",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="examinee par",
                    ),
                ),
            ],
            options={
                "verbose_name": "saisie d'indicateur",
                "verbose_name_plural": "saisies d'indicateur",
                "ordering": ["indicator", "period_year", "period_quarter", "period_month", "created_at"],
                "indexes": [
                    models.Index(fields=["indicator", "period_year", "status"], name="entry_indicator_year_status"),
                    models.Index(fields=["organization", "status"], name="entry_org_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("period_quarter__isnull", True), ("period_month__isnull", True), _connector="OR"),
                        name="entry_single_granularity",
                    ),
                ],
            },
        ),
    ]
