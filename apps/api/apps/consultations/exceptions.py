"""
Consultation workflow errors.

Validation failures use Django's ``ValidationError`` (re-exported here) like
the rest of the domain. The remaining error types distinguish "not found"
from retryable store failures and from unexpected faults.
"""
from django.core.exceptions import ValidationError

__all__ = [
    'ValidationError',
    'ConsultationError',
    'NotFoundError',
    'TransientInfraError',
    'UnexpectedError',
]


class ConsultationError(Exception):
    """Base class for consultation workflow errors."""


class NotFoundError(ConsultationError):
    """A referenced Patient/Doctor/Visit/Medicine/... id does not exist."""

    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f'{entity} {entity_id} not found')


class TransientInfraError(ConsultationError):
    """The store kept failing transiently after all retries were used."""

    def __init__(self, operation, attempts, last_error=None):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f'{operation} failed after {attempts} attempts '
            f'({last_error.__class__.__name__ if last_error else "unknown error"})'
        )


class UnexpectedError(ConsultationError):
    """Anything else. The message never carries internal detail."""

    default_message = 'Unexpected error while processing the consultation'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
