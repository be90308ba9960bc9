"""Errors raised by the approval workflow.

All of them subclass ``ValueError`` so callers that only care about
"the service refused" can keep catching ``ValueError``.
"""


class WorkflowError(ValueError):
    """Base class for approval workflow failures."""


class InvalidInput(WorkflowError):
    """The request is malformed (missing reason, bad value or period)."""


class UnauthorizedTransition(WorkflowError):
    """The actor's role may not perform this action in the entry's current state."""

    def __init__(self, message, *, status=None, role=None, action=None):
        super().__init__(message)
        self.status = status
        self.role = role
        self.action = action


class ConcurrentModification(WorkflowError):
    """The entry changed status between read and write."""

    def __init__(self, message, *, expected_status=None, entry_id=None):
        super().__init__(message)
        self.expected_status = expected_status
        self.entry_id = entry_id
