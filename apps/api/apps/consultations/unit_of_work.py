"""
Transaction boundary for the consultation workflow.

``run_in_transaction(work)`` executes ``work(uow)`` inside one
``transaction.atomic()`` block: it commits when ``work`` returns and rolls
back when it raises. Transient store failures re-run the whole closure from
scratch, with a fresh ``UnitOfWork``, up to ``MAX_RETRIES`` times with
exponential back-off. Resolution queries re-run too, so a replay finds
whatever a concurrent winner committed.

Transient failures:
    OperationalError  connection drop, deadlock victim, serialization failure
    InterfaceError    connection closed underneath us
    IntegrityError    a concurrent call won a find-or-create race
                      (live-visit uniqueness, document numbers)
"""
import time

from django.conf import settings
from django.db import IntegrityError, InterfaceError, OperationalError, connection, transaction

from apps.authz.models import Practitioner
from apps.billing.models import Bill
from apps.clinical.models import (
    Advised,
    Complaint,
    Dose,
    Medicine,
    Patient,
    Prescription,
    Visit,
)
from apps.core.observability import metrics
from apps.core.observability.events import log_transaction_retry
from apps.core.observability.logging import get_sanitized_logger

from .exceptions import TransientInfraError
from .repositories import Repository

logger = get_sanitized_logger(__name__)

TRANSIENT_ERRORS = (OperationalError, InterfaceError, IntegrityError)


class UnitOfWork:
    """
    Repositories for every entity the workflow touches, valid for one
    transaction attempt.
    """

    def __init__(self):
        self.patients = Repository(Patient)
        self.doctors = Repository(Practitioner, 'Doctor')
        self.visits = Repository(Visit)
        self.prescriptions = Repository(Prescription)
        self.bills = Repository(Bill)
        self.medicines = Repository(Medicine)
        self.doses = Repository(Dose)
        self.advised = Repository(Advised)
        self.complaints = Repository(Complaint)

    def save_changes(self, *instances):
        """Flush in-memory mutations of the given aggregates."""
        for instance in instances:
            if instance is not None:
                instance.save()


def _workflow_setting(name):
    return settings.CONSULTATION_WORKFLOW[name]


def retry_delay(attempt, base_delay=None, max_delay=None):
    """Exponential back-off: base * 2^(attempt-1), capped at max_delay."""
    if base_delay is None:
        base_delay = _workflow_setting('RETRY_BASE_DELAY_SECONDS')
    if max_delay is None:
        max_delay = _workflow_setting('RETRY_MAX_DELAY_SECONDS')
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def run_in_transaction(work, *, operation='consultation', max_retries=None):
    """
    Run ``work(uow)`` atomically, replaying it on transient store failures.

    Args:
        work: callable taking a ``UnitOfWork``; must keep all side effects
            inside the database transaction
        operation: name used in logs and metrics
        max_retries: replays allowed after the first attempt

    Returns:
        Whatever ``work`` returns.

    Raises:
        TransientInfraError: still failing after ``max_retries`` replays
        Any other exception from ``work``, unchanged (no retry)
    """
    if max_retries is None:
        max_retries = _workflow_setting('MAX_RETRIES')

    attempt = 0
    while True:
        attempt += 1
        try:
            with transaction.atomic():
                return work(UnitOfWork())
        except TRANSIENT_ERRORS as e:
            reason = e.__class__.__name__
            if attempt > max_retries:
                logger.error(
                    'Transaction retries exhausted',
                    extra={
                        'event': 'transaction_retries_exhausted',
                        'operation': operation,
                        'attempts': attempt,
                        'error_type': reason,
                    }
                )
                metrics.exceptions_total.labels(
                    exception_type='TransientInfraError',
                    location=operation,
                ).inc()
                raise TransientInfraError(operation, attempt, e) from e

            delay = retry_delay(attempt)
            metrics.consultation_transaction_retries_total.labels(reason=reason).inc()
            log_transaction_retry(operation, attempt, max_retries, e, delay)

            # A broken connection is only replaced outside an enclosing atomic block
            if not connection.in_atomic_block:
                connection.close_if_unusable_or_obsolete()
            if delay:
                time.sleep(delay)
