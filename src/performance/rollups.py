"""Goal and department rollups built on the indicator accumulator."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db.models import Sum

from performance.numbers import to_decimal
from performance.services import achievements_for
from performance.status import IndicatorStats
from strategy.models import Indicator

logger = logging.getLogger("portal")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ImpactCheck:
    total: Decimal
    is_valid: bool
    should_block: bool


def _weighted_progress(rows) -> Decimal | None:
    weighted = [
        (result, to_decimal(indicator.goal_impact_percentage, field="goal_impact_percentage"))
        for indicator, result in rows
    ]
    weighted = [(result, impact) for result, impact in weighted if impact is not None and impact > ZERO]
    if not weighted:
        return None
    if all(result.is_no_data for result, _ in weighted):
        return None
    progress = ZERO
    for result, impact in weighted:
        if result.is_no_data:
            continue
        percent = min(HUNDRED, max(ZERO, result.achievement_percent))
        progress += percent * impact / HUNDRED
    return progress


def goal_progress(goal, year: int) -> Decimal | None:
    """Overall progress of *goal* for *year*.

    Indicators with a positive ``goal_impact_percentage`` contribute their
    clamped percentage times their weight; an indicator without data
    contributes 0. Without any weights, the plain mean of the indicators
    that have data. None when no indicator has data.
    """
    rows = achievements_for(goal.indicators.all(), year)
    progress = _weighted_progress(rows)
    if progress is not None:
        return progress
    if any(
        (to_decimal(indicator.goal_impact_percentage) or ZERO) > ZERO
        for indicator, _ in rows
    ):
        return None

    percents = [result.achievement_percent for _, result in rows if not result.is_no_data]
    if not percents:
        return None
    return sum(percents, ZERO) / len(percents)


def goal_stats(goal, year: int) -> IndicatorStats:
    stats = IndicatorStats()
    for _, result in achievements_for(goal.indicators.all(), year):
        stats.add_result(result)
    return stats


def department_stats(organization, year: int, department=None) -> IndicatorStats:
    """Bucket counts over every indicator of *organization* (or one department)."""
    indicators = Indicator.objects.filter(goal__organization=organization)
    if department is not None:
        indicators = indicators.filter(goal__department=department)

    stats = IndicatorStats()
    for _, result in achievements_for(indicators, year):
        stats.add_result(result)
    logger.debug(
        "Rollup org=%s department=%s year=%s: %s indicators, %s without data",
        organization.pk, getattr(department, "pk", None), year, stats.total, stats.no_data,
    )
    return stats


def validate_goal_impact_percentages(goal, *, exclude_indicator=None, new_percentage=None) -> ImpactCheck:
    """Sum of indicator weights on *goal*, optionally replacing one of them.

    Valid when the weights add up to exactly 100; above 100 the change
    should be refused.
    """
    indicators = Indicator.objects.filter(goal=goal)
    if exclude_indicator is not None and exclude_indicator.pk is not None:
        indicators = indicators.exclude(pk=exclude_indicator.pk)
    total = indicators.aggregate(total=Sum("goal_impact_percentage"))["total"] or ZERO
    total += to_decimal(new_percentage, field="goal_impact_percentage") or ZERO
    return ImpactCheck(
        total=total,
        is_valid=total == HUNDRED,
        should_block=total > HUNDRED,
    )
