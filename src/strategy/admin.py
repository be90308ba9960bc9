"""Django admin configuration for goals, indicators and data entries."""
from django.contrib import admin

from strategy.models import DataEntry, Goal, Indicator, YearlyTarget


class IndicatorInline(admin.TabularInline):
    model = Indicator
    extra = 0
    fields = ("code", "name", "calculation_method", "target_value", "goal_impact_percentage")
    show_change_link = True


class YearlyTargetInline(admin.TabularInline):
    model = YearlyTarget
    extra = 0
    fields = ("year", "target_value")


@admin.register(Goal)
class GoalAdmin(admin.ModelAdmin):
    list_display = ("code", "title", "organization", "department")
    list_filter = ("organization", "department")
    search_fields = ("code", "title")
    inlines = [IndicatorInline]


@admin.register(Indicator)
class IndicatorAdmin(admin.ModelAdmin):
    list_display = (
        "code", "name", "goal", "calculation_method", "measurement_frequency",
        "baseline_value", "target_value", "goal_impact_percentage",
    )
    list_filter = ("calculation_method", "measurement_frequency", "aggregation")
    search_fields = ("code", "name", "goal__code")
    readonly_fields = ("id", "created_at", "updated_at")
    inlines = [YearlyTargetInline]


@admin.register(DataEntry)
class DataEntryAdmin(admin.ModelAdmin):
    """Read-only: status changes go through the approval services."""

    list_display = ("indicator", "period_label", "value", "status", "entered_by", "submitted_at")
    list_filter = ("status", "period_year")
    search_fields = ("indicator__code", "entered_by__email")
    readonly_fields = [f.name for f in DataEntry._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
