"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r"goals", v1_views.GoalViewSet, basename="goal")
router.register(r"indicators", v1_views.IndicatorViewSet, basename="indicator")
router.register(r"yearly-targets", v1_views.YearlyTargetViewSet, basename="yearly-target")
router.register(r"data-entries", v1_views.DataEntryViewSet, basename="data-entry")

urlpatterns = [
    path("performance/summary/", v1_views.PerformanceSummaryView.as_view(), name="performance-summary"),
    path("", include(router.urls)),
]
