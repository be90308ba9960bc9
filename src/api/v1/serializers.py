"""Serializers for the portal API v1."""
from rest_framework import serializers

from approvals.workflow import actor_role_for, available_actions
from organizations.models import AuditLog
from performance.rollups import validate_goal_impact_percentages
from strategy.models import DataEntry, Goal, Indicator, YearlyTarget


def _request_user(serializer):
    request = serializer.context.get("request")
    return getattr(request, "user", None)


def _check_same_organization(serializer, organization_id):
    user = _request_user(serializer)
    if user is None or user.is_superuser:
        return
    if user.organization_id != organization_id:
        raise serializers.ValidationError("Cet element appartient a une autre organisation.")


# ---------------------------------------------------------------------------
# Goals & indicators
# ---------------------------------------------------------------------------

class GoalSerializer(serializers.ModelSerializer):
    department_name = serializers.CharField(source="department.name", read_only=True, default=None)

    class Meta:
        model = Goal
        fields = ["id", "organization", "department", "department_name", "code", "title"]
        read_only_fields = fields


class IndicatorSerializer(serializers.ModelSerializer):
    goal_code = serializers.CharField(source="goal.code", read_only=True)

    class Meta:
        model = Indicator
        fields = [
            "id", "goal", "goal_code", "code", "name", "unit",
            "calculation_method", "baseline_value", "target_value",
            "measurement_frequency", "aggregation", "goal_impact_percentage",
            "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_goal(self, goal):
        _check_same_organization(self, goal.organization_id)
        return goal

    def validate(self, attrs):
        goal = attrs.get("goal") or getattr(self.instance, "goal", None)
        if goal is not None and "goal_impact_percentage" in attrs:
            check = validate_goal_impact_percentages(
                goal,
                exclude_indicator=self.instance,
                new_percentage=attrs["goal_impact_percentage"],
            )
            if check.should_block:
                raise serializers.ValidationError({
                    "goal_impact_percentage": (
                        f"La somme des poids de l'objectif depasserait 100% ({check.total}%)."
                    ),
                })
        return attrs


class YearlyTargetSerializer(serializers.ModelSerializer):
    class Meta:
        model = YearlyTarget
        fields = ["id", "indicator", "year", "target_value", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_indicator(self, indicator):
        _check_same_organization(self, indicator.goal.organization_id)
        return indicator


# ---------------------------------------------------------------------------
# Data entries
# ---------------------------------------------------------------------------

class DataEntrySerializer(serializers.ModelSerializer):
    """Read representation, with the actions the caller may attempt."""

    indicator_code = serializers.CharField(source="indicator.code", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    period_label = serializers.CharField(read_only=True)
    entered_by_name = serializers.CharField(source="entered_by.get_full_name", read_only=True)
    available_actions = serializers.SerializerMethodField()

    class Meta:
        model = DataEntry
        fields = [
            "id", "organization", "indicator", "indicator_code", "value",
            "period_year", "period_quarter", "period_month", "period_label",
            "status", "status_display", "notes",
            "entered_by", "entered_by_name", "submitted_at",
            "director_approved_by", "director_approved_at",
            "reviewed_by", "reviewed_at", "rejection_reason",
            "available_actions", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_available_actions(self, obj):
        user = _request_user(self)
        if user is None or not user.is_authenticated:
            return []
        return [action.value for action in available_actions(obj.status, actor_role_for(user))]


class DataEntryCreateSerializer(serializers.Serializer):
    indicator = serializers.PrimaryKeyRelatedField(
        queryset=Indicator.objects.select_related("goal__organization"),
    )
    value = serializers.DecimalField(max_digits=18, decimal_places=4)
    period_year = serializers.IntegerField(min_value=2000, max_value=2100)
    period_quarter = serializers.IntegerField(min_value=1, max_value=4, required=False, allow_null=True)
    period_month = serializers.IntegerField(min_value=1, max_value=12, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    submit = serializers.BooleanField(required=False, default=True)

    def validate_indicator(self, indicator):
        _check_same_organization(self, indicator.goal.organization_id)
        return indicator


class DataEntryUpdateSerializer(serializers.Serializer):
    value = serializers.DecimalField(max_digits=18, decimal_places=4)
    notes = serializers.CharField(required=False, allow_blank=True)


class RejectSerializer(serializers.Serializer):
    # Blank reasons are refused by the workflow itself.
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class AuditLogSerializer(serializers.ModelSerializer):
    actor_name = serializers.CharField(source="actor.get_full_name", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ["id", "action", "actor", "actor_name", "before_json", "after_json", "created_at"]
        read_only_fields = fields
