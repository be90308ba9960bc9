"""ORM glue between the strategy models and the achievement engine."""
from __future__ import annotations

from django.conf import settings
from django.db.models import Prefetch
from django.utils import timezone

from approvals.workflow import ELIGIBLE_STATUSES
from performance.engine import (
    AchievementResult,
    compute_achievement,
    period_sort_key,
    resolve_effective_target,
)
from strategy.models import DataEntry, Indicator, YearlyTarget


def default_year() -> int:
    """``PERFORMANCE_DEFAULT_YEAR`` when configured, else the current year."""
    configured = getattr(settings, "PERFORMANCE_DEFAULT_YEAR", None)
    return int(configured) if configured else timezone.localdate().year


def eligible_entries_for(indicator, year: int) -> list[DataEntry]:
    """Approved (and legacy submitted) entries of *year*, in period order."""
    entries = DataEntry.objects.filter(
        indicator=indicator,
        period_year=year,
        status__in=ELIGIBLE_STATUSES,
    )
    return sorted(entries, key=period_sort_key)


def effective_target_for(indicator, year: int):
    yearly = (
        YearlyTarget.objects
        .filter(indicator=indicator, year=year)
        .values_list("target_value", flat=True)
        .first()
    )
    return resolve_effective_target(indicator.target_value, yearly)


def indicator_achievement(indicator, year: int) -> AchievementResult:
    """Achievement of one indicator for *year* (two queries)."""
    return compute_achievement(
        indicator,
        effective_target_for(indicator, year),
        eligible_entries_for(indicator, year),
    )


def with_year_data(queryset, year: int):
    """Prefetch the yearly target and eligible entries of *year*.

    Lets :func:`achievements_for` compute a whole goal or department
    without a query per indicator.
    """
    return queryset.prefetch_related(
        Prefetch(
            "yearly_targets",
            queryset=YearlyTarget.objects.filter(year=year),
            to_attr="year_targets",
        ),
        Prefetch(
            "data_entries",
            queryset=DataEntry.objects.filter(period_year=year, status__in=ELIGIBLE_STATUSES),
            to_attr="year_entries",
        ),
    )


def achievements_for(indicators, year: int) -> list[tuple[Indicator, AchievementResult]]:
    """Compute every indicator of a queryset prefetched with :func:`with_year_data`."""
    results = []
    for indicator in with_year_data(indicators, year):
        yearly = indicator.year_targets[0].target_value if indicator.year_targets else None
        result = compute_achievement(
            indicator,
            resolve_effective_target(indicator.target_value, yearly),
            sorted(indicator.year_entries, key=period_sort_key),
        )
        results.append((indicator, result))
    return results
