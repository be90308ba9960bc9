from decimal import Decimal

import pytest

from strategy.choices import EntryStatus
from strategy.models import DataEntry, Indicator, YearlyTarget


def _unwrap_results(payload):
    if isinstance(payload, dict) and "results" in payload:
        return payload["results"]
    return payload


def _approved(indicator, user, value, quarter):
    return DataEntry.objects.create(
        organization=indicator.goal.organization,
        indicator=indicator,
        value=Decimal(value),
        period_year=2025,
        period_quarter=quarter,
        status=EntryStatus.APPROVED,
        entered_by=user,
    )


@pytest.mark.django_db
def test_indicator_achievement_endpoint(client, submitter, indicator, yearly_target):
    _approved(indicator, submitter, "20", 1)
    _approved(indicator, submitter, "30", 2)
    client.force_login(submitter)

    response = client.get(f"/api/v1/indicators/{indicator.pk}/achievement/?year=2025")

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["achievement_percent"]) == Decimal("75")
    assert Decimal(body["actual"]) == Decimal("150")
    assert body["status_bucket"] == "good"


@pytest.mark.django_db
def test_achievement_defaults_to_configured_year(client, submitter, indicator):
    client.force_login(submitter)

    body = client.get(f"/api/v1/indicators/{indicator.pk}/achievement/").json()

    assert body["year"] == 2025
    assert body["achievement_percent"] is None


@pytest.mark.django_db
def test_invalid_year_is_bad_request(client, submitter, indicator):
    client.force_login(submitter)

    response = client.get(f"/api/v1/indicators/{indicator.pk}/achievement/?year=deux-mille")

    assert response.status_code == 400


@pytest.mark.django_db
def test_indicators_are_scoped_to_the_organization(client, submitter, indicator, other_organization):
    from strategy.models import Goal

    foreign_goal = Goal.objects.create(organization=other_organization, code="X", title="Ailleurs")
    Indicator.objects.create(goal=foreign_goal, code="X-1", name="Ailleurs")
    client.force_login(submitter)

    rows = _unwrap_results(client.get("/api/v1/indicators/").json())

    assert [row["code"] for row in rows] == ["IND-1"]


@pytest.mark.django_db
def test_indicator_with_entries_cannot_be_deleted(client, admin_user, submitter, indicator):
    _approved(indicator, submitter, "1", 1)
    client.force_login(admin_user)

    response = client.delete(f"/api/v1/indicators/{indicator.pk}/")

    assert response.status_code == 409
    assert Indicator.objects.filter(pk=indicator.pk).exists()


@pytest.mark.django_db
def test_goal_weights_above_hundred_are_refused(client, admin_user, goal, indicator):
    indicator.goal_impact_percentage = Decimal("80")
    indicator.save()
    client.force_login(admin_user)

    response = client.post(
        "/api/v1/indicators/",
        {"goal": str(goal.pk), "code": "IND-2", "name": "Second", "goal_impact_percentage": "30"},
        content_type="application/json",
    )

    assert response.status_code == 400
    assert "goal_impact_percentage" in response.json()


@pytest.mark.django_db
def test_yearly_targets_are_admin_only_for_writes(client, submitter, admin_user, indicator):
    payload = {"indicator": str(indicator.pk), "year": 2026, "target_value": "300"}

    client.force_login(submitter)
    assert client.post("/api/v1/yearly-targets/", payload, content_type="application/json").status_code == 403
    assert client.get("/api/v1/yearly-targets/").status_code == 200

    client.force_login(admin_user)
    response = client.post("/api/v1/yearly-targets/", payload, content_type="application/json")
    assert response.status_code == 201
    assert YearlyTarget.objects.filter(indicator=indicator, year=2026).exists()


@pytest.mark.django_db
def test_goal_progress_endpoint(client, submitter, goal, indicator, yearly_target):
    _approved(indicator, submitter, "50", 1)
    client.force_login(submitter)

    body = client.get(f"/api/v1/goals/{goal.pk}/progress/?year=2025").json()

    assert Decimal(body["progress_percent"]) == Decimal("75")
    assert body["stats"]["good"] == 1


@pytest.mark.django_db
def test_performance_summary(client, admin_user, submitter, department, indicator, yearly_target):
    _approved(indicator, submitter, "100", 1)
    client.force_login(admin_user)

    body = client.get(f"/api/v1/performance/summary/?year=2025&department={department.pk}").json()

    assert body["total"] == 1
    assert body["excellent"] == 1
    assert client.get("/api/v1/performance/summary/?department=not-a-uuid").status_code == 400
