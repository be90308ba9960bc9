from decimal import Decimal

import pytest

from performance.rollups import (
    department_stats,
    goal_progress,
    goal_stats,
    validate_goal_impact_percentages,
)
from performance.services import (
    default_year,
    effective_target_for,
    eligible_entries_for,
    indicator_achievement,
)
from performance.status import StatusBucket
from strategy.choices import EntryStatus
from strategy.models import DataEntry, Goal, Indicator


def _record(indicator, user, value, quarter, status=EntryStatus.APPROVED, year=2025):
    return DataEntry.objects.create(
        organization=indicator.goal.organization,
        indicator=indicator,
        value=Decimal(str(value)),
        period_year=year,
        period_quarter=quarter,
        status=status,
        entered_by=user,
    )


@pytest.mark.django_db
def test_indicator_achievement_uses_yearly_target(indicator, yearly_target, submitter):
    _record(indicator, submitter, 20, 1)
    _record(indicator, submitter, 30, 2)

    result = indicator_achievement(indicator, 2025)

    assert result.actual == Decimal("150")
    assert result.achievement_percent == Decimal("75")
    assert result.status_bucket == StatusBucket.GOOD


@pytest.mark.django_db
def test_indicator_default_target_without_yearly_override(indicator, submitter):
    _record(indicator, submitter, 50, 1)

    assert effective_target_for(indicator, 2025) == Decimal("150")
    assert indicator_achievement(indicator, 2025).achievement_percent == Decimal("100")


@pytest.mark.django_db
def test_only_approved_and_legacy_entries_count(indicator, yearly_target, submitter):
    _record(indicator, submitter, 20, 1)
    _record(indicator, submitter, 10, 2, status=EntryStatus.SUBMITTED)
    _record(indicator, submitter, 500, 3, status=EntryStatus.PENDING_ADMIN)
    _record(indicator, submitter, 500, 4, status=EntryStatus.REJECTED)
    _record(indicator, submitter, 500, 1, year=2024)

    entries = eligible_entries_for(indicator, 2025)

    assert [e.period_quarter for e in entries] == [1, 2]
    assert indicator_achievement(indicator, 2025).actual == Decimal("130")


@pytest.mark.django_db
def test_zero_target_is_no_data(indicator, yearly_target, submitter):
    yearly_target.target_value = Decimal("0")
    yearly_target.save()
    _record(indicator, submitter, 20, 1)

    result = indicator_achievement(indicator, 2025)

    assert result.is_no_data
    assert result.actual == Decimal("120")


@pytest.mark.django_db
def test_goal_progress_weighted_by_impact(goal, indicator, yearly_target, submitter):
    indicator.goal_impact_percentage = Decimal("60")
    indicator.save()
    second = Indicator.objects.create(
        goal=goal, code="IND-2", name="Ecoles", calculation_method="cumulative",
        target_value=Decimal("10"), goal_impact_percentage=Decimal("40"),
    )
    _record(indicator, submitter, 50, 1)     # 150 / 200 = 75 %
    _record(second, submitter, 20, 1)        # 200 %, clamped to 100

    assert goal_progress(goal, 2025) == Decimal("85")


@pytest.mark.django_db
def test_goal_progress_counts_weighted_no_data_as_zero(goal, indicator, yearly_target, submitter):
    indicator.goal_impact_percentage = Decimal("50")
    indicator.save()
    Indicator.objects.create(goal=goal, code="IND-2", name="Sans saisie", goal_impact_percentage=Decimal("50"))
    _record(indicator, submitter, 100, 1)    # 100 %

    assert goal_progress(goal, 2025) == Decimal("50")


@pytest.mark.django_db
def test_goal_progress_without_weights_is_plain_mean(goal, indicator, yearly_target, submitter):
    second = Indicator.objects.create(goal=goal, code="IND-2", name="Ecoles", target_value=Decimal("10"))
    Indicator.objects.create(goal=goal, code="IND-3", name="Sans saisie", target_value=Decimal("10"))
    _record(indicator, submitter, 0, 1)      # 50 %
    _record(second, submitter, 3, 1)         # 30 %

    assert goal_progress(goal, 2025) == Decimal("40")


@pytest.mark.django_db
def test_goal_progress_without_any_data_is_none(goal, indicator):
    assert goal_progress(goal, 2025) is None


@pytest.mark.django_db
def test_goal_and_department_stats(organization, department, other_department, goal, indicator, yearly_target, submitter):
    Indicator.objects.create(goal=goal, code="IND-2", name="Sans saisie", target_value=Decimal("10"))
    other_goal = Goal.objects.create(organization=organization, department=other_department, code="G2", title="Budget")
    budget = Indicator.objects.create(goal=other_goal, code="B-1", name="Budget", target_value=Decimal("10"))
    _record(indicator, submitter, 100, 1)    # 100 % -> excellent
    _record(budget, submitter, 1, 1)         # 10 % -> very weak

    stats = goal_stats(goal, 2025)
    assert stats.total == 1
    assert stats.excellent == 1
    assert stats.no_data == 1

    whole = department_stats(organization, 2025)
    assert whole.total == 2
    assert whole.very_weak == 1
    assert whole.average_percent == Decimal("55")

    only_works = department_stats(organization, 2025, department=department)
    assert only_works.total == 1
    assert only_works.no_data == 1


@pytest.mark.django_db
def test_validate_goal_impact_percentages(goal, indicator):
    indicator.goal_impact_percentage = Decimal("70")
    indicator.save()

    assert validate_goal_impact_percentages(goal, new_percentage=Decimal("30")).is_valid
    blocked = validate_goal_impact_percentages(goal, new_percentage=Decimal("40"))
    assert blocked.should_block
    assert blocked.total == Decimal("110")

    replacing = validate_goal_impact_percentages(goal, exclude_indicator=indicator, new_percentage=Decimal("100"))
    assert replacing.is_valid
    assert not replacing.should_block


def test_default_year_comes_from_settings(settings):
    settings.PERFORMANCE_DEFAULT_YEAR = 2031

    assert default_year() == 2031
