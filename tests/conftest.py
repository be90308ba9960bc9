from decimal import Decimal

import pytest

from accounts.models import User
from organizations.models import Department, Organization
from strategy.models import Goal, Indicator, YearlyTarget


@pytest.fixture
def organization(db):
    return Organization.objects.create(
        name="Ville de Test",
        code="VDT",
        requires_director_review=True,
    )


@pytest.fixture
def department(organization):
    return Department.objects.create(
        organization=organization,
        name="Direction des Travaux",
        code="DT",
    )


@pytest.fixture
def other_department(organization):
    return Department.objects.create(
        organization=organization,
        name="Direction des Finances",
        code="DF",
    )


@pytest.fixture
def other_organization(db):
    return Organization.objects.create(name="Autre Ville", code="AV")


@pytest.fixture
def submitter(organization, department):
    return User.objects.create_user(
        email="agent@test.com",
        password="testpass123",
        first_name="Agent",
        last_name="Saisie",
        role=User.Role.USER,
        organization=organization,
        department=department,
    )


@pytest.fixture
def other_submitter(organization, department):
    return User.objects.create_user(
        email="agent2@test.com",
        password="testpass123",
        first_name="Autre",
        last_name="Agent",
        role=User.Role.USER,
        organization=organization,
        department=department,
    )


@pytest.fixture
def director(organization, department):
    return User.objects.create_user(
        email="directeur@test.com",
        password="testpass123",
        first_name="Directeur",
        last_name="Travaux",
        role=User.Role.DIRECTOR,
        organization=organization,
        department=department,
    )


@pytest.fixture
def other_director(organization, other_department):
    return User.objects.create_user(
        email="directeur.finances@test.com",
        password="testpass123",
        first_name="Directeur",
        last_name="Finances",
        role=User.Role.DIRECTOR,
        organization=organization,
        department=other_department,
    )


@pytest.fixture
def admin_user(organization):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="Portail",
        role=User.Role.ADMIN,
        organization=organization,
    )


@pytest.fixture
def goal(organization, department):
    return Goal.objects.create(
        organization=organization,
        department=department,
        code="G1",
        title="Ameliorer la voirie",
    )


@pytest.fixture
def indicator(goal):
    return Indicator.objects.create(
        goal=goal,
        code="IND-1",
        name="Km de routes rehabilitees",
        unit="km",
        calculation_method="cumulative",
        baseline_value=Decimal("100"),
        target_value=Decimal("150"),
        measurement_frequency="quarterly",
    )


@pytest.fixture
def yearly_target(indicator):
    return YearlyTarget.objects.create(
        indicator=indicator,
        year=2025,
        target_value=Decimal("200"),
    )
