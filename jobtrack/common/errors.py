"""Exceptions raised by the tracker.

All of them derive from TrackerError so the CLI can report any of them
uniformly. Repository code raises them and never swallows them.
"""
from typing import Optional


class TrackerError(Exception):
    """Base class for everything the tracker raises on purpose."""
    exit_code = 1


class NotFoundError(TrackerError):
    """A referenced job, stage, sprint, title or status does not exist."""

    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key!r} not found")


class ValidationError(TrackerError):
    """Input rejected before any storage call."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class ConstraintViolationError(TrackerError):
    """A write would break a uniqueness constraint.

    For interview stages this means the numbering invariant was already
    broken, so it is an internal failure rather than a user error.
    """


class StorageUnavailableError(TrackerError):
    """The SQLite file could not be opened, locked or written."""
    exit_code = 2


class SprintNameConflictError(TrackerError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"There is already a sprint with name {name}. Try renaming the sprint."
        )


class NoJobsAvailableError(TrackerError):
    def __init__(self, sprint: Optional[str]):
        self.sprint = sprint
        super().__init__(
            f"No job applications tracked for the current sprint [{sprint or '?'}]"
        )
