"""Enumerations shared by the strategy models, the workflow and the engine.

Kept free of model imports so the pure modules can use them without the
ORM.
"""
from django.db import models


class EntryStatus(models.TextChoices):
    DRAFT = "draft", "Brouillon"
    PENDING_DIRECTOR = "pending_director", "En attente du directeur"
    PENDING_ADMIN = "pending_admin", "En attente de l'administrateur"
    APPROVED = "approved", "Approuvee"
    REJECTED = "rejected", "Rejetee"
    # Legacy provisional status imported from the previous portal.
    SUBMITTED = "submitted", "Soumise (provisoire)"


class CalculationMethod(models.TextChoices):
    CUMULATIVE = "cumulative", "Cumulatif croissant"
    INCREASING = "increasing", "Croissant"
    CUMULATIVE_INCREASING = "cumulative_increasing", "Cumulatif croissant (alias)"
    STANDARD = "standard", "Standard"
    CUMULATIVE_DECREASING = "cumulative_decreasing", "Cumulatif decroissant"
    DECREASING = "decreasing", "Decroissant"
    MAINTENANCE = "maintenance", "Maintien"
    MAINTENANCE_INCREASING = "maintenance_increasing", "Maintien croissant"
    MAINTENANCE_DECREASING = "maintenance_decreasing", "Maintien decroissant"
    PERCENTAGE = "percentage", "Pourcentage"
    PERCENTAGE_INCREASING = "percentage_increasing", "Pourcentage croissant"
    PERCENTAGE_DECREASING = "percentage_decreasing", "Pourcentage decroissant"


class MeasurementFrequency(models.TextChoices):
    MONTHLY = "monthly", "Mensuelle"
    QUARTERLY = "quarterly", "Trimestrielle"
    SEMI_ANNUAL = "semi_annual", "Semestrielle"
    ANNUAL = "annual", "Annuelle"


class Aggregation(models.TextChoices):
    SUM = "sum", "Somme des periodes"
    LATEST = "latest", "Derniere valeur"
