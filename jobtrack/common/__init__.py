"""Shared configuration and errors."""

from .errors import (
    TrackerError,
    NotFoundError,
    ValidationError,
    ConstraintViolationError,
    StorageUnavailableError,
    SprintNameConflictError,
    NoJobsAvailableError,
)

__all__ = [
    'TrackerError',
    'NotFoundError',
    'ValidationError',
    'ConstraintViolationError',
    'StorageUnavailableError',
    'SprintNameConflictError',
    'NoJobsAvailableError',
]
