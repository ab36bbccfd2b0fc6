"""
Domain errors raised by the collection services.
"""

from __future__ import annotations


class TaskBoardError(Exception):
    """Base class for errors surfaced to service callers."""


class ValidationError(TaskBoardError):
    """Client input failed a precondition (e.g. a missing required field)."""


class NotFoundError(TaskBoardError):
    """The referenced document does not exist."""

    def __init__(self, noun: str, doc_id: str):
        self.noun = noun
        self.doc_id = doc_id
        super().__init__(f"{noun.capitalize()} not found")


class StoreError(TaskBoardError):
    """Any failure from the underlying document store."""

    def __init__(self, action: str, cause: BaseException):
        self.action = action
        self.cause = cause
        super().__init__(f"Failed to {action}: {cause}")
