from datetime import datetime, timezone as dt_timezone

import pytest

from approvals.exceptions import InvalidInput, UnauthorizedTransition
from accounts.models import User
from approvals.workflow import (
    ADMIN_ROLE_CODES,
    DIRECTOR_ROLE_CODES,
    Action,
    ActorRole,
    OrganizationScope,
    available_actions,
    default_queue_status,
    initial_status,
    is_eligible,
    propose_transition,
    resolve_actor_role,
)
from strategy.choices import EntryStatus

NOW = datetime(2025, 3, 31, 12, 0, tzinfo=dt_timezone.utc)


def _entry(status, entered_by="u1"):
    return {"status": status, "entered_by_id": entered_by}


@pytest.mark.parametrize(
    ("user_role", "is_superuser", "expected"),
    [
        ("USER", False, ActorRole.SUBMITTER),
        ("DIRECTOR", False, ActorRole.DIRECTOR),
        ("ADMIN", False, ActorRole.ADMIN),
        ("VICE_PRESIDENT", False, ActorRole.ADMIN),
        ("SUPER_ADMIN", False, ActorRole.ADMIN),
        ("USER", True, ActorRole.ADMIN),
        (None, False, ActorRole.SUBMITTER),
    ],
)
def test_resolve_actor_role(user_role, is_superuser, expected):
    assert resolve_actor_role(user_role, is_superuser=is_superuser) is expected


def test_workflow_role_codes_are_portal_roles():
    assert ADMIN_ROLE_CODES | DIRECTOR_ROLE_CODES <= set(User.Role.values)
    assert resolve_actor_role(User.Role.USER) is ActorRole.SUBMITTER


def test_submitter_submit_goes_to_director():
    proposal = propose_transition(
        _entry(EntryStatus.DRAFT), ActorRole.SUBMITTER, Action.SUBMIT, actor_id="u1", now=NOW,
    )

    assert proposal.expected_status == EntryStatus.DRAFT
    assert proposal.new_status == EntryStatus.PENDING_DIRECTOR
    assert proposal.audit_fields == {"submitted_at": NOW}


def test_submitter_submit_skips_director_when_organization_opts_out():
    scope = OrganizationScope(organization_id="org", requires_director_review=False)

    proposal = propose_transition(
        _entry(EntryStatus.DRAFT), "submitter", "submit", actor_id="u1", scope=scope, now=NOW,
    )

    assert proposal.new_status == EntryStatus.PENDING_ADMIN
    assert initial_status(ActorRole.SUBMITTER, scope) == EntryStatus.PENDING_ADMIN
    assert initial_status(ActorRole.SUBMITTER) == EntryStatus.PENDING_DIRECTOR


def test_director_own_draft_counts_as_director_validated():
    proposal = propose_transition(
        _entry(EntryStatus.DRAFT, entered_by="d1"), ActorRole.DIRECTOR, Action.SUBMIT, actor_id="d1", now=NOW,
    )

    assert proposal.new_status == EntryStatus.PENDING_ADMIN
    assert proposal.audit_fields["director_approved_by_id"] == "d1"
    assert proposal.audit_fields["director_approved_at"] == NOW


def test_submitter_cannot_submit_someone_elses_draft():
    with pytest.raises(UnauthorizedTransition):
        propose_transition(_entry(EntryStatus.DRAFT, entered_by="u2"), ActorRole.SUBMITTER, Action.SUBMIT, actor_id="u1")


def test_director_approval_stamps_director_fields():
    proposal = propose_transition(
        _entry(EntryStatus.PENDING_DIRECTOR), ActorRole.DIRECTOR, Action.APPROVE, actor_id="d1", now=NOW,
    )

    assert proposal.new_status == EntryStatus.PENDING_ADMIN
    assert proposal.audit_fields == {"director_approved_by_id": "d1", "director_approved_at": NOW}


def test_admin_approval_is_final():
    proposal = propose_transition(
        _entry(EntryStatus.PENDING_ADMIN), ActorRole.ADMIN, Action.APPROVE, actor_id="a1", now=NOW,
    )

    assert proposal.new_status == EntryStatus.APPROVED
    assert proposal.audit_fields == {"reviewed_by_id": "a1", "reviewed_at": NOW}


@pytest.mark.parametrize("action", [Action.APPROVE, Action.REJECT])
def test_admin_cannot_act_at_director_stage(action):
    with pytest.raises(UnauthorizedTransition) as excinfo:
        propose_transition(
            _entry(EntryStatus.PENDING_DIRECTOR), ActorRole.ADMIN, action, {"reason": "non"}, actor_id="a1",
        )

    assert excinfo.value.status == EntryStatus.PENDING_DIRECTOR
    assert excinfo.value.role is ActorRole.ADMIN
    assert excinfo.value.action is action


def test_director_cannot_reject_at_admin_stage():
    with pytest.raises(UnauthorizedTransition):
        propose_transition(
            _entry(EntryStatus.PENDING_ADMIN), ActorRole.DIRECTOR, Action.REJECT, {"reason": "non"}, actor_id="d1",
        )


def test_rejection_requires_a_reason():
    with pytest.raises(InvalidInput):
        propose_transition(_entry(EntryStatus.PENDING_ADMIN), ActorRole.ADMIN, Action.REJECT, {"reason": "   "})


def test_rejection_reason_is_stripped():
    proposal = propose_transition(
        _entry(EntryStatus.PENDING_DIRECTOR), ActorRole.DIRECTOR, Action.REJECT,
        {"reason": "  Valeur incoherente  "}, actor_id="d1", now=NOW,
    )

    assert proposal.new_status == EntryStatus.REJECTED
    assert proposal.audit_fields["rejection_reason"] == "Valeur incoherente"
    assert proposal.audit_fields["reviewed_by_id"] == "d1"


@pytest.mark.parametrize("status", [EntryStatus.APPROVED, EntryStatus.REJECTED, EntryStatus.SUBMITTED])
@pytest.mark.parametrize("role", list(ActorRole))
@pytest.mark.parametrize("action", list(Action))
def test_terminal_states_have_no_way_out(status, role, action):
    with pytest.raises(UnauthorizedTransition):
        propose_transition(_entry(status), role, action, {"reason": "x"}, actor_id="u1")


def test_unknown_action_is_invalid_input():
    with pytest.raises(InvalidInput):
        propose_transition(_entry(EntryStatus.DRAFT), ActorRole.SUBMITTER, "archive")


def test_propose_does_not_touch_the_entry():
    entry = _entry(EntryStatus.PENDING_ADMIN)

    propose_transition(entry, ActorRole.ADMIN, Action.APPROVE, actor_id="a1")

    assert entry["status"] == EntryStatus.PENDING_ADMIN


def test_queue_status_per_role():
    assert default_queue_status(ActorRole.DIRECTOR) == EntryStatus.PENDING_DIRECTOR
    assert default_queue_status(ActorRole.ADMIN) == EntryStatus.PENDING_ADMIN
    assert default_queue_status(ActorRole.SUBMITTER) is None


def test_eligibility():
    assert is_eligible(EntryStatus.APPROVED)
    assert is_eligible("submitted")
    assert not is_eligible(EntryStatus.PENDING_ADMIN)
    assert not is_eligible(EntryStatus.REJECTED)


def test_available_actions():
    assert available_actions(EntryStatus.PENDING_DIRECTOR, ActorRole.DIRECTOR) == [Action.APPROVE, Action.REJECT]
    assert available_actions(EntryStatus.PENDING_DIRECTOR, ActorRole.ADMIN) == []
    assert available_actions(EntryStatus.APPROVED, ActorRole.ADMIN) == []
