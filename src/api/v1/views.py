"""API v1 views for indicators, targets, data entries and rollups."""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import ProtectedError
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.pagination import StandardResultsSetPagination
from api.v1.permissions import IsReviewer, ReadOnlyOrAdmin
from api.v1.serializers import (
    AuditLogSerializer,
    DataEntryCreateSerializer,
    DataEntrySerializer,
    DataEntryUpdateSerializer,
    GoalSerializer,
    IndicatorSerializer,
    RejectSerializer,
    YearlyTargetSerializer,
)
from approvals import services as approval_services
from approvals.exceptions import ConcurrentModification, UnauthorizedTransition
from approvals.workflow import ActorRole, actor_role_for
from organizations.models import Department
from organizations.services import entity_history
from performance.rollups import department_stats, goal_progress, goal_stats
from performance.services import default_year, effective_target_for, indicator_achievement
from strategy.choices import EntryStatus
from strategy.models import Goal, Indicator, YearlyTarget

logger = logging.getLogger("portal")


def _workflow_error_response(exc):
    """Map a workflow ``ValueError`` to its HTTP status."""
    if isinstance(exc, UnauthorizedTransition):
        http_status = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ConcurrentModification):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    return Response({"detail": str(exc)}, status=http_status)


def _year_param(request):
    raw = request.query_params.get("year")
    if raw in (None, ""):
        return default_year()
    try:
        year = int(raw)
    except ValueError:
        raise ValidationError({"year": "Annee invalide."})
    if not 2000 <= year <= 2100:
        raise ValidationError({"year": "L'annee doit etre comprise entre 2000 et 2100."})
    return year


def _for_user_organization(qs, user, field="organization"):
    if user.is_superuser and user.organization_id is None:
        return qs
    return qs.filter(**{f"{field}_id": user.organization_id})


# ---------------------------------------------------------------------------
# Goals & indicators
# ---------------------------------------------------------------------------

class GoalViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = GoalSerializer
    queryset = Goal.objects.select_related("organization", "department")
    filterset_fields = ["department"]
    search_fields = ["code", "title"]
    ordering_fields = ["code", "title"]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return _for_user_organization(super().get_queryset(), self.request.user)

    @action(detail=True, methods=["get"], url_path="progress")
    def progress(self, request, pk=None):
        """Weighted progress and bucket counts of one goal for ``?year=``."""
        goal = self.get_object()
        year = _year_param(request)
        return Response({
            "goal": str(goal.pk),
            "year": year,
            "progress_percent": goal_progress(goal, year),
            "stats": goal_stats(goal, year).as_dict(),
        })


class IndicatorViewSet(viewsets.ModelViewSet):
    """
    Indicators of the caller's organization.

    Anyone authenticated may read; writes are reserved to administrators.
    """

    serializer_class = IndicatorSerializer
    queryset = Indicator.objects.select_related("goal", "goal__organization")
    permission_classes = [ReadOnlyOrAdmin]
    filterset_fields = ["goal", "calculation_method", "measurement_frequency"]
    search_fields = ["code", "name"]
    ordering_fields = ["code", "name", "created_at"]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return _for_user_organization(super().get_queryset(), self.request.user, "goal__organization")

    def destroy(self, request, *args, **kwargs):
        indicator = self.get_object()
        try:
            indicator.delete()
        except ProtectedError:
            logger.info("Refused deleting indicator %s: entries reference it", indicator.pk)
            return Response(
                {"detail": "Impossible de supprimer un indicateur qui a des saisies."},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"], url_path="achievement")
    def achievement(self, request, pk=None):
        indicator = self.get_object()
        year = _year_param(request)
        result = indicator_achievement(indicator, year)
        return Response({
            "indicator": str(indicator.pk),
            "year": year,
            "effective_target": effective_target_for(indicator, year),
            **result.as_dict(),
        })


class YearlyTargetViewSet(viewsets.ModelViewSet):
    serializer_class = YearlyTargetSerializer
    queryset = YearlyTarget.objects.select_related("indicator", "indicator__goal")
    permission_classes = [ReadOnlyOrAdmin]
    filterset_fields = ["indicator", "year"]
    ordering_fields = ["year"]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return _for_user_organization(
            super().get_queryset(), self.request.user, "indicator__goal__organization",
        )


# ---------------------------------------------------------------------------
# Data entries
# ---------------------------------------------------------------------------

class DataEntryViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Indicator data entries and their approval workflow.

    - list: reviewers default to their own queue (``?status=all`` lifts it)
    - create: records an entry, submitted unless ``submit`` is false
    - partial_update: edits the caller's own draft
    - submit / approve / reject: workflow transitions
    - history: audit trail
    """

    serializer_class = DataEntrySerializer
    filterset_fields = ["indicator", "period_year", "period_quarter", "period_month"]
    ordering_fields = ["created_at", "submitted_at", "period_year"]
    pagination_class = StandardResultsSetPagination
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_permissions(self):
        if self.action in ("approve", "reject"):
            return [IsReviewer()]
        return [IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        if self.action != "list":
            return approval_services.visible_entries(user)

        requested = self.request.query_params.get("status", "")
        if requested == "all":
            return approval_services.visible_entries(user)
        if requested and requested not in EntryStatus.values:
            raise ValidationError({"status": f"Statut inconnu: {requested}."})
        if actor_role_for(user) is ActorRole.SUBMITTER:
            entries = approval_services.visible_entries(user)
            return entries.filter(status=requested) if requested else entries
        return approval_services.review_queue(user, requested or None)

    def create(self, request, *args, **kwargs):
        serializer = DataEntryCreateSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            entry = approval_services.create_data_entry(
                indicator=data["indicator"],
                actor=request.user,
                value=data["value"],
                period_year=data["period_year"],
                period_quarter=data.get("period_quarter"),
                period_month=data.get("period_month"),
                notes=data.get("notes", ""),
                submit=data.get("submit", True),
            )
        except ValueError as exc:
            return _workflow_error_response(exc)
        return Response(
            DataEntrySerializer(entry, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, *args, **kwargs):
        entry = self.get_object()
        serializer = DataEntryUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            entry = approval_services.update_draft_value(
                entry,
                actor=request.user,
                value=serializer.validated_data["value"],
                notes=serializer.validated_data.get("notes"),
            )
        except ValueError as exc:
            return _workflow_error_response(exc)
        return Response(DataEntrySerializer(entry, context={"request": request}).data)

    def _run(self, request, service, **kwargs):
        entry = self.get_object()
        try:
            entry = service(entry, actor=request.user, **kwargs)
        except ValueError as exc:
            return _workflow_error_response(exc)
        return Response(DataEntrySerializer(entry, context={"request": request}).data)

    @action(detail=True, methods=["post"], url_path="submit")
    def submit(self, request, pk=None):
        return self._run(request, approval_services.submit_entry)

    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        return self._run(request, approval_services.approve_entry)

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        """Reject the entry; ``reason`` is mandatory."""
        serializer = RejectSerializer(data=request.data or {})
        serializer.is_valid(raise_exception=True)
        return self._run(
            request,
            approval_services.reject_entry,
            reason=serializer.validated_data["reason"],
        )

    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request, pk=None):
        """Audit trail of the entry, oldest first."""
        entry = self.get_object()
        logs = entity_history(approval_services.ENTITY_TYPE, entry.pk)
        return Response(AuditLogSerializer(logs, many=True).data)


# ---------------------------------------------------------------------------
# Rollups
# ---------------------------------------------------------------------------

class PerformanceSummaryView(APIView):
    """Bucket counts over the caller's organization, or one department."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        if user.organization is None:
            return Response(
                {"detail": "Aucune organisation associee a ce compte."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        year = _year_param(request)

        department = None
        department_id = request.query_params.get("department")
        if department_id:
            try:
                department = Department.objects.get(pk=department_id, organization=user.organization)
            except (Department.DoesNotExist, DjangoValidationError):
                raise ValidationError({"department": "Direction inconnue."})

        stats = department_stats(user.organization, year, department=department)
        return Response({
            "organization": str(user.organization.pk),
            "department": str(department.pk) if department else None,
            "year": year,
            **stats.as_dict(),
        })
