"""Approval state machine for indicator data entries.

Every permission rule lives in ``TRANSITIONS``, keyed by
``(current status, actor role, action)``. ``propose_transition`` is a pure
decision: it returns the new status and the audit stamps to write, and the
caller persists them with a status-conditioned update
(see ``approvals.services.apply_transition``).

::

    draft --submit--> pending_director --director approve--> pending_admin --admin approve--> approved
                 \\                     \\--director reject--> rejected
                  \\--(director/admin, or no director review)--> pending_admin --admin reject--> rejected

``approved``, ``rejected`` and the legacy ``submitted`` status are terminal.
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from django.utils import timezone

from approvals.exceptions import InvalidInput, UnauthorizedTransition
from strategy.choices import EntryStatus


class ActorRole(str, enum.Enum):
    SUBMITTER = "submitter"
    DIRECTOR = "director"
    ADMIN = "admin"


class Action(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


# Portal roles (accounts.User.Role values) with final-approval authority.
ADMIN_ROLE_CODES = frozenset({"ADMIN", "VICE_PRESIDENT", "SUPER_ADMIN"})
DIRECTOR_ROLE_CODES = frozenset({"DIRECTOR"})

ELIGIBLE_STATUSES = frozenset({EntryStatus.APPROVED, EntryStatus.SUBMITTED})
_ELIGIBLE_VALUES = frozenset(status.value for status in ELIGIBLE_STATUSES)
TERMINAL_STATUSES = frozenset({EntryStatus.APPROVED, EntryStatus.REJECTED, EntryStatus.SUBMITTED})

# Audit stamp kinds.
_STAMP_SUBMITTED = "submitted"
_STAMP_DIRECTOR = "director_approval"
_STAMP_REVIEW = "review"


@dataclass(frozen=True)
class _Rule:
    next_status: EntryStatus
    stamps: tuple[str, ...]
    requires_reason: bool = False


TRANSITIONS: dict[tuple[EntryStatus, ActorRole, Action], _Rule] = {
    (EntryStatus.DRAFT, ActorRole.SUBMITTER, Action.SUBMIT): _Rule(
        EntryStatus.PENDING_DIRECTOR, (_STAMP_SUBMITTED,),
    ),
    # A director's own entry counts as director-validated.
    (EntryStatus.DRAFT, ActorRole.DIRECTOR, Action.SUBMIT): _Rule(
        EntryStatus.PENDING_ADMIN, (_STAMP_SUBMITTED, _STAMP_DIRECTOR),
    ),
    (EntryStatus.DRAFT, ActorRole.ADMIN, Action.SUBMIT): _Rule(
        EntryStatus.PENDING_ADMIN, (_STAMP_SUBMITTED,),
    ),
    (EntryStatus.PENDING_DIRECTOR, ActorRole.DIRECTOR, Action.APPROVE): _Rule(
        EntryStatus.PENDING_ADMIN, (_STAMP_DIRECTOR,),
    ),
    (EntryStatus.PENDING_DIRECTOR, ActorRole.DIRECTOR, Action.REJECT): _Rule(
        EntryStatus.REJECTED, (_STAMP_REVIEW,), requires_reason=True,
    ),
    (EntryStatus.PENDING_ADMIN, ActorRole.ADMIN, Action.APPROVE): _Rule(
        EntryStatus.APPROVED, (_STAMP_REVIEW,),
    ),
    (EntryStatus.PENDING_ADMIN, ActorRole.ADMIN, Action.REJECT): _Rule(
        EntryStatus.REJECTED, (_STAMP_REVIEW,), requires_reason=True,
    ),
}


@dataclass(frozen=True)
class OrganizationScope:
    """Explicit organization context for workflow decisions."""

    organization_id: object = None
    requires_director_review: bool = True
    department_id: object = None


@dataclass(frozen=True)
class TransitionProposal:
    """What to write, and the status the row must still have when writing."""

    action: Action
    expected_status: EntryStatus
    new_status: EntryStatus
    audit_fields: dict = field(default_factory=dict)


def resolve_actor_role(user_role, *, is_superuser: bool = False) -> ActorRole:
    """Collapse a portal role into the three roles the workflow knows."""
    if is_superuser:
        return ActorRole.ADMIN
    code = str(user_role or "").strip().upper()
    if code in ADMIN_ROLE_CODES:
        return ActorRole.ADMIN
    if code in DIRECTOR_ROLE_CODES:
        return ActorRole.DIRECTOR
    return ActorRole.SUBMITTER


def actor_role_for(user) -> ActorRole:
    return resolve_actor_role(
        getattr(user, "role", None),
        is_superuser=bool(getattr(user, "is_superuser", False)),
    )


def is_eligible(status) -> bool:
    """True when an entry with *status* may feed the achievement engine."""
    return str(status) in _ELIGIBLE_VALUES


def default_queue_status(actor_role) -> EntryStatus | None:
    """Status a reviewer's queue shows when first opened."""
    role = ActorRole(actor_role)
    if role is ActorRole.DIRECTOR:
        return EntryStatus.PENDING_DIRECTOR
    if role is ActorRole.ADMIN:
        return EntryStatus.PENDING_ADMIN
    return None


def initial_status(actor_role, scope: OrganizationScope | None = None) -> EntryStatus:
    """Status a draft lands in when *actor_role* submits it."""
    rule = TRANSITIONS[(EntryStatus.DRAFT, ActorRole(actor_role), Action.SUBMIT)]
    return _escalate(rule.next_status, scope)


def available_actions(status, actor_role) -> list[Action]:
    """Actions *actor_role* may attempt on an entry in *status*."""
    role = ActorRole(actor_role)
    return [
        action for (state, rule_role, action) in TRANSITIONS
        if state == status and rule_role is role
    ]


def _escalate(next_status: EntryStatus, scope: OrganizationScope | None) -> EntryStatus:
    if (
        next_status == EntryStatus.PENDING_DIRECTOR
        and scope is not None
        and not scope.requires_director_review
    ):
        return EntryStatus.PENDING_ADMIN
    return next_status


def _field(obj, name: str, default=None):
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _coerce(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInput(f"{label} inconnu: {value!r}.") from None


def propose_transition(
    entry,
    actor_role,
    action,
    payload: Mapping | None = None,
    *,
    actor_id=None,
    scope: OrganizationScope | None = None,
    now: datetime | None = None,
) -> TransitionProposal:
    """Decide the outcome of *action* by *actor_role* on *entry*.

    Parameters
    ----------
    entry : DataEntry or mapping
        Read for ``status`` and ``entered_by_id`` only; never modified.
    actor_role : ActorRole or its value
    action : Action or its value
    payload : mapping, optional
        ``{"reason": ...}`` for rejections.
    actor_id : optional
        Stamped into the audit fields; also used to check draft ownership.
    scope : OrganizationScope, optional
        Decides whether a submitter's draft skips the director step.
    now : datetime, optional

    Raises
    ------
    UnauthorizedTransition
        The (status, role, action) triple is not in ``TRANSITIONS``, or a
        non-admin tries to submit someone else's draft.
    InvalidInput
        Unknown action/role/status, or a rejection without a reason.
    """
    action = _coerce(Action, action, "Action")
    role = _coerce(ActorRole, actor_role, "Role")
    current = _coerce(EntryStatus, _field(entry, "status"), "Statut")

    rule = TRANSITIONS.get((current, role, action))
    if rule is None:
        raise UnauthorizedTransition(
            f"Action '{action.value}' non autorisee pour le role '{role.value}' "
            f"sur une saisie au statut '{current.value}'.",
            status=current,
            role=role,
            action=action,
        )

    if action is Action.SUBMIT and role is not ActorRole.ADMIN and actor_id is not None:
        author_id = _field(entry, "entered_by_id", _field(entry, "entered_by"))
        if author_id is not None and str(author_id) != str(actor_id):
            raise UnauthorizedTransition(
                "Seul l'auteur de la saisie peut la soumettre.",
                status=current,
                role=role,
                action=action,
            )

    reason = ""
    if rule.requires_reason:
        reason = str((payload or {}).get("reason") or "").strip()
        if not reason:
            raise InvalidInput("Un motif de rejet est requis.")

    now = now or timezone.now()
    audit_fields = {}
    if _STAMP_SUBMITTED in rule.stamps:
        audit_fields["submitted_at"] = now
    if _STAMP_DIRECTOR in rule.stamps:
        audit_fields["director_approved_by_id"] = actor_id
        audit_fields["director_approved_at"] = now
    if _STAMP_REVIEW in rule.stamps:
        audit_fields["reviewed_by_id"] = actor_id
        audit_fields["reviewed_at"] = now
    if rule.requires_reason:
        audit_fields["rejection_reason"] = reason

    return TransitionProposal(
        action=action,
        expected_status=current,
        new_status=_escalate(rule.next_status, scope),
        audit_fields=audit_fields,
    )
