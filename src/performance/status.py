"""Status buckets and the rollup accumulator.

Cut points (percent of target):

=================  ======================
exceeding_target   > 100
excellent          80 <= p <= 100
good               60 <= p < 80
moderate           40 <= p < 60
weak               20 <= p < 40
very_weak          < 20
=================  ======================
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal

from django.db import models

from performance.numbers import to_decimal


class StatusBucket(models.TextChoices):
    EXCEEDING_TARGET = "exceeding_target", "Au-dela de la cible"
    EXCELLENT = "excellent", "Excellent"
    GOOD = "good", "Bon"
    MODERATE = "moderate", "Moyen"
    WEAK = "weak", "Faible"
    VERY_WEAK = "very_weak", "Tres faible"


# (lower bound inclusive, bucket), checked top-down after the > 100 case.
_LOWER_BOUNDS = (
    (Decimal("80"), StatusBucket.EXCELLENT),
    (Decimal("60"), StatusBucket.GOOD),
    (Decimal("40"), StatusBucket.MODERATE),
    (Decimal("20"), StatusBucket.WEAK),
)
_HUNDRED = Decimal("100")


def bucketize(achievement_percent) -> StatusBucket | None:
    """Map an achievement percentage to its bucket; None means no data."""
    percent = to_decimal(achievement_percent, field="achievement_percent")
    if percent is None:
        return None
    if percent > _HUNDRED:
        return StatusBucket.EXCEEDING_TARGET
    for lower, bucket in _LOWER_BOUNDS:
        if percent >= lower:
            return bucket
    return StatusBucket.VERY_WEAK


@dataclass
class IndicatorStats:
    """Per-bucket counters for goal and department rollups.

    Every update is a constant-time increment, so the result does not
    depend on the order indicators are fed in.
    """

    total: int = 0
    exceeding_target: int = 0
    excellent: int = 0
    good: int = 0
    moderate: int = 0
    weak: int = 0
    very_weak: int = 0
    no_data: int = 0
    percent_sum: Decimal = Decimal("0")
    # Bucketed indicators that also carried a percent.
    percent_count: int = 0

    def add(self, bucket: StatusBucket | None, achievement_percent=None) -> None:
        if bucket is None:
            self.no_data += 1
            return
        bucket = StatusBucket(bucket)
        setattr(self, bucket.value, getattr(self, bucket.value) + 1)
        self.total += 1
        percent = to_decimal(achievement_percent, field="achievement_percent")
        if percent is not None:
            self.percent_sum += percent
            self.percent_count += 1

    def add_result(self, result) -> None:
        """Accumulate an ``AchievementResult``."""
        self.add(result.status_bucket, result.achievement_percent)

    def merge(self, other: "IndicatorStats") -> "IndicatorStats":
        return IndicatorStats(
            **{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)}
        )

    def count(self, bucket: StatusBucket) -> int:
        return getattr(self, StatusBucket(bucket).value)

    @property
    def average_percent(self) -> Decimal | None:
        if self.percent_count == 0:
            return None
        return self.percent_sum / self.percent_count

    def as_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["average_percent"] = self.average_percent
        return data


def accumulate(stats: IndicatorStats, bucket: StatusBucket | None, achievement_percent=None) -> IndicatorStats:
    """Count one indicator into *stats* and return it."""
    stats.add(bucket, achievement_percent)
    return stats
