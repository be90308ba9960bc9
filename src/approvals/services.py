"""Business-logic / service functions for the data-entry approval workflow.

Every status change goes through :func:`apply_transition`, which writes
with a status-conditioned UPDATE and records an audit-log row.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from approvals.exceptions import ConcurrentModification, InvalidInput, UnauthorizedTransition
from approvals.workflow import (
    Action,
    ActorRole,
    OrganizationScope,
    TransitionProposal,
    actor_role_for,
    default_queue_status,
    propose_transition,
)
from organizations.services import create_audit_log
from strategy.choices import EntryStatus, MeasurementFrequency
from strategy.models import DataEntry

logger = logging.getLogger("portal")

ENTITY_TYPE = "DataEntry"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _clean_value(value) -> Decimal:
    if value is None or isinstance(value, bool) or value == "":
        raise InvalidInput("La valeur est obligatoire et doit etre numerique.")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"Valeur non numerique: {value!r}.") from None
    if not number.is_finite():
        raise InvalidInput("La valeur doit etre un nombre fini.")
    return number


def _clean_int(value, label: str, low: int, high: int) -> int | None:
    if value in (None, ""):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{label} invalide: {value!r}.") from None
    if not low <= number <= high:
        raise InvalidInput(f"{label} doit etre compris entre {low} et {high}.")
    return number


def validate_period(indicator, period_year, period_quarter=None, period_month=None) -> tuple:
    """Check a period against the indicator's measurement frequency.

    Returns the cleaned ``(year, quarter, month)`` triple.

    Raises
    ------
    InvalidInput
        Out-of-range values, both quarter and month set, or a granularity
        that does not match ``indicator.measurement_frequency``.
    """
    year = _clean_int(period_year, "Annee", 2000, 2100)
    if year is None:
        raise InvalidInput("L'annee de la periode est obligatoire.")
    quarter = _clean_int(period_quarter, "Trimestre", 1, 4)
    month = _clean_int(period_month, "Mois", 1, 12)
    if quarter is not None and month is not None:
        raise InvalidInput("Une saisie est trimestrielle ou mensuelle, pas les deux.")

    frequency = indicator.measurement_frequency
    if frequency == MeasurementFrequency.MONTHLY and month is None:
        raise InvalidInput("Indicateur mensuel: le mois est obligatoire.")
    if frequency == MeasurementFrequency.QUARTERLY and quarter is None:
        raise InvalidInput("Indicateur trimestriel: le trimestre est obligatoire.")
    if frequency == MeasurementFrequency.SEMI_ANNUAL and quarter not in (2, 4):
        raise InvalidInput("Indicateur semestriel: utiliser le trimestre 2 ou 4.")
    if frequency == MeasurementFrequency.ANNUAL and (quarter is not None or month is not None):
        raise InvalidInput("Indicateur annuel: ni trimestre ni mois.")
    return year, quarter, month


def _scope_for(organization) -> OrganizationScope:
    return OrganizationScope(
        organization_id=organization.pk,
        requires_director_review=organization.requires_director_review,
    )


def _check_reach(entry: DataEntry, actor, role: ActorRole) -> None:
    """Refuse actors outside the entry's organization or department."""
    if actor.is_superuser:
        return
    if actor.organization_id != entry.organization_id:
        raise UnauthorizedTransition(
            "Cette saisie appartient a une autre organisation.",
            status=entry.status,
            role=role,
        )
    if role is ActorRole.DIRECTOR and actor.department_id:
        goal_department_id = entry.indicator.goal.department_id
        if goal_department_id and goal_department_id != actor.department_id:
            raise UnauthorizedTransition(
                "Cette saisie ne releve pas de votre direction.",
                status=entry.status,
                role=role,
            )


# ---------------------------------------------------------------------------
# apply_transition
# ---------------------------------------------------------------------------

@transaction.atomic
def apply_transition(entry: DataEntry, proposal: TransitionProposal, *, actor) -> DataEntry:
    """Persist *proposal* only if the entry still has the expected status.

    Parameters
    ----------
    entry : DataEntry
    proposal : approvals.workflow.TransitionProposal
    actor : accounts.models.User

    Returns
    -------
    DataEntry
        Reloaded from the database.

    Raises
    ------
    ConcurrentModification
        Another request moved the entry first; nothing is written.
    """
    updated = DataEntry.objects.filter(
        pk=entry.pk,
        status=proposal.expected_status,
    ).update(
        status=proposal.new_status,
        updated_at=timezone.now(),
        **proposal.audit_fields,
    )
    if updated == 0:
        logger.warning(
            "Concurrent modification on entry %s (expected %s, action %s by %s)",
            entry.pk, proposal.expected_status, proposal.action.value, actor,
        )
        raise ConcurrentModification(
            "La saisie a ete modifiee entre-temps. Rechargez-la puis recommencez.",
            expected_status=proposal.expected_status,
            entry_id=entry.pk,
        )

    after = {"status": str(proposal.new_status)}
    if proposal.audit_fields.get("rejection_reason"):
        after["rejection_reason"] = proposal.audit_fields["rejection_reason"]
    create_audit_log(
        actor=actor,
        organization=entry.organization,
        action=f"data_entry.{proposal.action.value}",
        entity_type=ENTITY_TYPE,
        entity_id=entry.pk,
        before={"status": str(proposal.expected_status)},
        after=after,
    )
    logger.info(
        "Entry %s %s -> %s (%s by %s)",
        entry.pk, proposal.expected_status, proposal.new_status,
        proposal.action.value, actor,
    )
    entry.refresh_from_db()
    return entry


def _transition(entry: DataEntry, *, actor, action: Action, payload=None) -> DataEntry:
    role = actor_role_for(actor)
    _check_reach(entry, actor, role)
    proposal = propose_transition(
        entry,
        role,
        action,
        payload,
        actor_id=actor.pk,
        scope=_scope_for(entry.organization),
    )
    return apply_transition(entry, proposal, actor=actor)


# ---------------------------------------------------------------------------
# create / edit
# ---------------------------------------------------------------------------

@transaction.atomic
def create_data_entry(
    *,
    indicator,
    actor,
    value,
    period_year,
    period_quarter=None,
    period_month=None,
    notes: str = "",
    submit: bool = True,
) -> DataEntry:
    """Record a new measurement for *indicator*, submitted by default.

    At most one live (non-rejected) entry may exist per indicator period;
    a rejected period can be entered again.

    Raises
    ------
    InvalidInput
        Non-numeric value, bad period, or a live entry already exists.
    UnauthorizedTransition
        The actor belongs to another organization.
    """
    number = _clean_value(value)
    year, quarter, month = validate_period(indicator, period_year, period_quarter, period_month)
    organization = indicator.goal.organization

    if not actor.is_superuser and actor.organization_id != organization.pk:
        raise UnauthorizedTransition(
            "Cet indicateur appartient a une autre organisation.",
            status=EntryStatus.DRAFT,
            role=actor_role_for(actor),
            action=Action.SUBMIT,
        )

    live = DataEntry.objects.filter(
        indicator=indicator,
        period_year=year,
        period_quarter=quarter,
        period_month=month,
    ).exclude(status=EntryStatus.REJECTED)
    if live.exists():
        raise InvalidInput("Une saisie existe deja pour cette periode.")

    try:
        with transaction.atomic():
            entry = DataEntry.objects.create(
                organization=organization,
                indicator=indicator,
                value=number,
                period_year=year,
                period_quarter=quarter,
                period_month=month,
                notes=notes or "",
                entered_by=actor,
                status=EntryStatus.DRAFT,
            )
    except IntegrityError:
        logger.warning(
            "Duplicate live entry for indicator %s period %s/%s/%s by %s",
            indicator.code, year, quarter, month, actor,
        )
        raise InvalidInput("Une saisie existe deja pour cette periode.") from None

    create_audit_log(
        actor=actor,
        organization=organization,
        action="data_entry.create",
        entity_type=ENTITY_TYPE,
        entity_id=entry.pk,
        after={"status": EntryStatus.DRAFT.value, "value": str(number), "period": entry.period_label},
    )
    logger.info(
        "Entry %s created for indicator %s period %s by %s",
        entry.pk, indicator.code, entry.period_label, actor,
    )

    if submit:
        entry = submit_entry(entry, actor=actor)
    return entry


@transaction.atomic
def update_draft_value(entry: DataEntry, *, actor, value, notes: str | None = None) -> DataEntry:
    """Change the value (and optionally notes) of the actor's own draft."""
    number = _clean_value(value)
    entry = DataEntry.objects.select_for_update().get(pk=entry.pk)

    if str(entry.entered_by_id) != str(actor.pk):
        raise UnauthorizedTransition(
            "Seul l'auteur peut modifier cette saisie.",
            status=entry.status,
            role=actor_role_for(actor),
        )
    if entry.status != EntryStatus.DRAFT:
        raise UnauthorizedTransition(
            "Seul un brouillon peut etre modifie.",
            status=entry.status,
            role=actor_role_for(actor),
        )

    before = {"value": str(entry.value)}
    entry.value = number
    update_fields = ["value", "updated_at"]
    if notes is not None:
        entry.notes = notes
        update_fields.append("notes")
    entry.save(update_fields=update_fields)

    create_audit_log(
        actor=actor,
        organization=entry.organization,
        action="data_entry.update",
        entity_type=ENTITY_TYPE,
        entity_id=entry.pk,
        before=before,
        after={"value": str(number)},
    )
    logger.info("Draft entry %s value updated by %s", entry.pk, actor)
    return entry


# ---------------------------------------------------------------------------
# Workflow actions
# ---------------------------------------------------------------------------

def submit_entry(entry: DataEntry, *, actor) -> DataEntry:
    return _transition(entry, actor=actor, action=Action.SUBMIT)


def approve_entry(entry: DataEntry, *, actor) -> DataEntry:
    return _transition(entry, actor=actor, action=Action.APPROVE)


def reject_entry(entry: DataEntry, *, actor, reason: str) -> DataEntry:
    return _transition(entry, actor=actor, action=Action.REJECT, payload={"reason": reason})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def visible_entries(actor):
    """Entries the actor may read.

    Admins see their whole organization, directors their department's
    goals, everyone else only what they entered.
    """
    qs = DataEntry.objects.select_related(
        "indicator", "indicator__goal", "entered_by", "organization",
    )
    if actor.is_superuser and actor.organization_id is None:
        return qs
    qs = qs.filter(organization_id=actor.organization_id)

    role = actor_role_for(actor)
    if role is ActorRole.ADMIN:
        return qs
    if role is ActorRole.DIRECTOR:
        if actor.department_id:
            return qs.filter(indicator__goal__department_id=actor.department_id)
        return qs
    return qs.filter(entered_by=actor)


def review_queue(actor, status=None):
    """Entries waiting on *actor*, filtered on *status*.

    ``status`` defaults to the actor's own stage (``pending_director`` or
    ``pending_admin``). Submitters have no queue.
    """
    role = actor_role_for(actor)
    if role is ActorRole.SUBMITTER:
        return DataEntry.objects.none()
    if status in (None, ""):
        status = default_queue_status(role)
    elif status not in EntryStatus.values:
        raise InvalidInput(f"Statut inconnu: {status!r}.")
    return visible_entries(actor).filter(status=status).order_by("submitted_at", "created_at")
