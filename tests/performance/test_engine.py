from decimal import Decimal

import pytest

from performance.engine import (
    AchievementResult,
    MethodFamily,
    compute_achievement,
    period_sort_key,
    resolve_effective_target,
    resolve_method,
)
from performance.status import StatusBucket


def _entry(value, year=2025, quarter=None, month=None):
    return {"value": value, "period_year": year, "period_quarter": quarter, "period_month": month}


def test_cumulative_indicator_adds_entries_to_baseline():
    indicator = {"calculation_method": "cumulative", "baseline_value": Decimal("100")}

    result = compute_achievement(indicator, Decimal("200"), [_entry("20", quarter=1), _entry("30", quarter=2)])

    assert result.actual == Decimal("150")
    assert result.achievement_percent == Decimal("75")
    assert result.status_bucket == StatusBucket.GOOD


def test_decreasing_indicator_subtracts_entries_from_baseline():
    indicator = {"calculation_method": "decreasing", "baseline_value": 50}

    result = compute_achievement(indicator, 40, [_entry(5), _entry(5)])

    assert result.actual == Decimal("40")
    assert result.achievement_percent == Decimal("100")
    assert result.status_bucket == StatusBucket.EXCELLENT


def test_maintenance_indicator_sums_entries_and_ignores_baseline():
    indicator = {"calculation_method": "maintenance", "baseline_value": 999}

    result = compute_achievement(indicator, 100, [_entry(30), _entry(30)])

    assert result.actual == Decimal("60")
    assert result.achievement_percent == Decimal("60")


def test_latest_aggregation_uses_most_recent_period():
    indicator = {"calculation_method": "percentage", "aggregation": "latest"}
    entries = [_entry(80, month=12), _entry(40, quarter=1), _entry(60, quarter=2)]

    result = compute_achievement(indicator, 100, entries)

    assert result.actual == Decimal("80")


def test_no_entries_is_no_data():
    result = compute_achievement({"calculation_method": "cumulative"}, 100, [])

    assert result.is_no_data
    assert result.actual is None
    assert result.status_bucket is None


@pytest.mark.parametrize("target", [0, -5, None, "abc"])
def test_unusable_target_is_no_data_but_keeps_actual(target):
    indicator = {"calculation_method": "cumulative", "baseline_value": 10}

    result = compute_achievement(indicator, target, [_entry(5)])

    assert result.achievement_percent is None
    assert result.actual == Decimal("15")


def test_percent_is_not_clamped():
    indicator = {"calculation_method": "cumulative", "baseline_value": 0}

    over = compute_achievement(indicator, 10, [_entry(30)])
    under = compute_achievement({"calculation_method": "decreasing", "baseline_value": 0}, 10, [_entry(5)])

    assert over.achievement_percent == Decimal("300")
    assert over.status_bucket == StatusBucket.EXCEEDING_TARGET
    assert under.achievement_percent == Decimal("-50")
    assert under.status_bucket == StatusBucket.VERY_WEAK


def test_garbage_values_count_as_zero():
    indicator = {"calculation_method": "cumulative", "baseline_value": "nan"}

    result = compute_achievement(indicator, 100, [_entry("abc"), _entry(float("inf")), _entry(None), _entry(25)])

    assert result.actual == Decimal("25")
    assert result.achievement_percent == Decimal("25")


def test_unknown_method_falls_back_to_cumulative():
    assert resolve_method("  Maintenance ") is MethodFamily.LEVEL
    assert resolve_method("whatever") is MethodFamily.INCREASING
    assert resolve_method("") is MethodFamily.INCREASING
    assert resolve_method(None) is MethodFamily.INCREASING


def test_inputs_are_not_mutated_and_result_is_deterministic():
    indicator = {"calculation_method": "cumulative", "baseline_value": 1}
    entries = [_entry(2, quarter=2), _entry(3, quarter=1)]
    snapshot = [dict(e) for e in entries]

    first = compute_achievement(indicator, 12, entries)
    second = compute_achievement(indicator, 12, entries)

    assert first == second
    assert entries == snapshot


def test_model_like_objects_are_accepted():
    class Row:
        def __init__(self, value):
            self.value = value
            self.period_year = 2025
            self.period_quarter = 1
            self.period_month = None

    class Ind:
        calculation_method = "standard"
        baseline_value = None

    result = compute_achievement(Ind(), 10, [Row(Decimal("5"))])

    assert result.achievement_percent == Decimal("50")


def test_yearly_target_overrides_indicator_default():
    assert resolve_effective_target(150, 200) == Decimal("200")
    assert resolve_effective_target(150, None) == Decimal("150")
    assert resolve_effective_target(None, None) is None


def test_period_sort_key_places_quarters_and_years_at_month_end():
    assert period_sort_key(_entry(0, quarter=2)) == (2025, 6)
    assert period_sort_key(_entry(0, month=7)) == (2025, 7)
    assert period_sort_key(_entry(0)) == (2025, 12)


def test_result_as_dict_exposes_bucket_label():
    payload = AchievementResult(achievement_percent=Decimal("85"), actual=Decimal("85")).as_dict()

    assert payload["status_bucket"] == "excellent"
    assert payload["status_label"] == "Excellent"
    assert AchievementResult.no_data().as_dict()["status_bucket"] is None


def test_malformed_period_sorts_first_instead_of_raising(caplog):
    indicator = {"calculation_method": "percentage", "aggregation": "latest"}
    entries = [_entry(60, quarter=2), _entry(90, year="n/a", quarter="x")]

    assert period_sort_key(entries[1]) == (0, 12)
    assert compute_achievement(indicator, 100, entries).actual == Decimal("60")
    assert "Ignoring non-numeric period_year" in caplog.text
