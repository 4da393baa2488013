"""
Domain events logging helpers.

Structured event logging for consultation, visit and billing operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'consultation_completed', 'visit_transition')
        entity_type: Type of entity (e.g., 'Visit', 'Bill')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, retry, blocked...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'bill_payment_recorded',
            entity_type='Bill',
            entity_id=str(bill.id),
            entity_ids={'bill_id': str(bill.id), 'visit_id': str(bill.visit_id)},
            payment_mode='cash',
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'retry']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used to verify data integrity at critical points, e.g. right before a
    consultation transaction commits.

    Example:
        log_consistency_checkpoint(
            'consultation_aggregates_consistent',
            entity_ids={'visit_id': str(visit.id), 'bill_id': str(bill.id)},
            checks_passed={'bill_linked': True, 'paid_within_total': True},
        )
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_visit_transition(visit, from_status, to_status, result='success', **extra):
    """Log visit status transition event."""
    log_domain_event(
        'visit_transition',
        entity_type='Visit',
        entity_id=str(visit.id),
        entity_ids={'visit_id': str(visit.id), 'patient_id': str(visit.patient_id)},
        result=result,
        from_status=from_status,
        to_status=to_status,
        **extra
    )


def log_payment_recorded(bill, payment):
    log_domain_event(
        'bill_payment_recorded',
        entity_type='Bill',
        entity_id=str(bill.id),
        entity_ids={
            'bill_id': str(bill.id),
            'visit_id': str(bill.visit_id),
            'payment_id': str(payment.id),
        },
        payment_mode=payment.payment_mode,
        amount=str(payment.amount),
        bill_status=bill.status,
    )


def log_consultation_completed(result, reused, duration_ms=None):
    """
    Log a committed consultation.

    ``reused`` maps aggregate name to whether an existing row was reused.
    """
    extra = {
        'reused_visit': reused.get('visit', False),
        'reused_prescription': reused.get('prescription', False),
        'reused_bill': reused.get('bill', False),
        'new_patient': reused.get('new_patient', False),
        'total_amount': str(result.total_amount),
        'is_fully_paid': result.is_fully_paid,
    }
    if duration_ms is not None:
        extra['duration_ms'] = round(duration_ms, 2)

    log_domain_event(
        'consultation_completed',
        entity_type='Visit',
        entity_id=str(result.consultation_id),
        entity_ids={
            'visit_id': str(result.consultation_id),
            'patient_id': str(result.patient.id),
            'prescription_id': str(result.prescription.id) if result.prescription else '',
            'bill_id': str(result.bill.id) if result.bill else '',
        },
        **extra
    )


def log_transaction_retry(operation, attempt, max_retries, error, delay_seconds):
    """Log a transient store failure that triggers a full transaction replay."""
    log_domain_event(
        'transaction_retry',
        entity_type='Transaction',
        result='retry',
        operation=operation,
        attempt=attempt,
        max_retries=max_retries,
        error_type=error.__class__.__name__,
        delay_seconds=delay_seconds,
    )
