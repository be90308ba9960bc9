"""Indicator achievement engine.

Turns an indicator's baseline, its effective target for a year and the
eligible data entries of that year into one achievement percentage.

Core design principles:
- Pure functions: no ORM access, no I/O, inputs are never mutated.
- Callers filter entries on workflow status before calling in; the engine
  never looks at ``status``.
- "No data" is a result, not an exception: a missing or non-positive
  target, or no entries at all, yields ``achievement_percent = None`` so
  batch rollups keep going and dashboards can render a placeholder.
- Percentages are neither clamped nor rounded.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from performance.numbers import to_decimal
from performance.status import StatusBucket, bucketize
from strategy.choices import Aggregation, CalculationMethod

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class MethodFamily(str, enum.Enum):
    """How period values combine with the baseline into an actual value."""

    INCREASING = "increasing"    # baseline + sum
    DECREASING = "decreasing"    # baseline - sum
    LEVEL = "level"              # entries are the level itself


_METHOD_FAMILIES: dict[str, MethodFamily] = {
    CalculationMethod.CUMULATIVE.value: MethodFamily.INCREASING,
    CalculationMethod.INCREASING.value: MethodFamily.INCREASING,
    CalculationMethod.CUMULATIVE_INCREASING.value: MethodFamily.INCREASING,
    CalculationMethod.STANDARD.value: MethodFamily.INCREASING,
    CalculationMethod.CUMULATIVE_DECREASING.value: MethodFamily.DECREASING,
    CalculationMethod.DECREASING.value: MethodFamily.DECREASING,
    CalculationMethod.MAINTENANCE.value: MethodFamily.LEVEL,
    CalculationMethod.MAINTENANCE_INCREASING.value: MethodFamily.LEVEL,
    CalculationMethod.MAINTENANCE_DECREASING.value: MethodFamily.LEVEL,
    CalculationMethod.PERCENTAGE.value: MethodFamily.LEVEL,
    CalculationMethod.PERCENTAGE_INCREASING.value: MethodFamily.LEVEL,
    CalculationMethod.PERCENTAGE_DECREASING.value: MethodFamily.LEVEL,
}


@dataclass(frozen=True)
class AchievementResult:
    """Outcome of one indicator/year computation.

    ``achievement_percent is None`` is the "no data" case. ``actual`` may
    still be set then (entries exist but the target is unusable).
    """

    achievement_percent: Decimal | None
    actual: Decimal | None = None

    @classmethod
    def no_data(cls, actual: Decimal | None = None) -> "AchievementResult":
        return cls(achievement_percent=None, actual=actual)

    @property
    def is_no_data(self) -> bool:
        return self.achievement_percent is None

    @property
    def status_bucket(self) -> StatusBucket | None:
        return bucketize(self.achievement_percent)

    def as_dict(self) -> dict:
        bucket = self.status_bucket
        return {
            "achievement_percent": self.achievement_percent,
            "actual": self.actual,
            "status_bucket": bucket.value if bucket else None,
            "status_label": bucket.label if bucket else None,
        }


def _field(obj, name: str, default=None):
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def resolve_method(calculation_method) -> MethodFamily:
    """Map a raw ``calculation_method`` to its family.

    Unknown, empty or null methods fall back to the cumulative formula.
    """
    if calculation_method is None:
        return MethodFamily.INCREASING
    key = str(calculation_method).strip().lower()
    family = _METHOD_FAMILIES.get(key)
    if family is None:
        if key:
            logger.debug("Unknown calculation_method %r, using cumulative", calculation_method)
        return MethodFamily.INCREASING
    return family


def resolve_effective_target(indicator_target, yearly_target=None) -> Decimal | None:
    """Yearly override first, then the indicator default, else None."""
    for candidate, label in ((yearly_target, "yearly_target"), (indicator_target, "target_value")):
        target = to_decimal(candidate, field=label)
        if target is not None:
            return target
    return None


def period_sort_key(entry) -> tuple[int, int]:
    """Place annual, quarterly and monthly entries on one month-end axis.

    A quarter sorts at its last month, an annual entry at December, so a
    mixed list orders the same way a fully monthly one would.
    """
    year = _period_part(entry, "period_year")
    month = _period_part(entry, "period_month")
    if month:
        return year, month
    quarter = _period_part(entry, "period_quarter")
    if quarter:
        return year, quarter * 3
    return year, 12


def _period_part(entry, name: str) -> int:
    value = _field(entry, name)
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s=%r", name, value)
        return 0


def _entry_value(entry) -> Decimal:
    value = to_decimal(_field(entry, "value"), field="entry.value")
    return value if value is not None else ZERO


def _latest_value(entries: tuple) -> Decimal:
    # Later position wins on identical periods.
    _, _, entry = max(
        (period_sort_key(entry), position, entry)
        for position, entry in enumerate(entries)
    )
    return _entry_value(entry)


def compute_actual(
    family: MethodFamily,
    baseline: Decimal,
    entries: tuple,
    aggregation: str | None = None,
) -> Decimal:
    """Combine the baseline and the period values per *family*."""
    if family is MethodFamily.LEVEL:
        if str(aggregation or "").strip().lower() == Aggregation.LATEST:
            return _latest_value(entries)
        return sum((_entry_value(e) for e in entries), ZERO)

    total = sum((_entry_value(e) for e in entries), ZERO)
    if family is MethodFamily.DECREASING:
        return baseline - total
    return baseline + total


def compute_achievement(indicator, effective_target, eligible_entries: Iterable) -> AchievementResult:
    """Compute the achievement of one indicator for one year.

    Parameters
    ----------
    indicator : model instance or mapping
        Must expose ``calculation_method`` and ``baseline_value``;
        ``aggregation`` is optional (defaults to ``sum``).
    effective_target : number or None
        Output of :func:`resolve_effective_target`.
    eligible_entries : iterable
        Entries already filtered on workflow status; each exposes
        ``value`` and the ``period_*`` fields.

    Returns
    -------
    AchievementResult
    """
    entries = tuple(eligible_entries)
    if not entries:
        return AchievementResult.no_data()

    family = resolve_method(_field(indicator, "calculation_method"))
    baseline = to_decimal(_field(indicator, "baseline_value"), field="baseline_value") or ZERO
    aggregation = _field(indicator, "aggregation") or Aggregation.SUM
    actual = compute_actual(family, baseline, entries, aggregation)

    target = to_decimal(effective_target, field="effective_target")
    if target is None or target <= ZERO:
        return AchievementResult.no_data(actual=actual)

    return AchievementResult(
        achievement_percent=actual / target * HUNDRED,
        actual=actual,
    )
