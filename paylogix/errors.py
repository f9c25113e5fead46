"""
Error taxonomy for PayLogix.

Three kinds of failure can reach the user:
- ValidationError: the input itself is wrong (negative amount, blank field)
- NotFoundError: the action targets a record that no longer exists
- PersistenceError: storage could not confirm the change

None of them are retried automatically. The user re-attempts the action.
"""

from typing import Optional


class PayLogixError(Exception):
    """Base exception for all PayLogix errors."""
    pass


class ValidationError(PayLogixError):
    """
    Input failed validation.

    Carries the list of ValidationIssue objects so the UI can show
    every problem at once instead of one at a time.
    """

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = issues or []
        super().__init__(message)


class NotFoundError(PayLogixError):
    """The targeted record does not exist."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} not found: {record_id}")


class PersistenceError(PayLogixError):
    """Storage backend failed to confirm an operation."""
    pass


class BackendConnectionError(PersistenceError):
    """Could not connect to the storage backend."""
    pass


class NoSessionError(PersistenceError):
    """No signed-in user, so no data access is attempted."""
    pass
