"""
Consultation service layer - the Consultation Completion Workflow.

One "doctor sees a patient" event:
- Resolve (reuse or create) Patient -> Visit -> Prescription -> Bill
- Apply clinical details, prescription lines, discount/tax and payment
- Complete the visit
- Commit everything as one transaction, replayed on transient failures

Nothing escapes the transaction: on any error the store is left exactly as it
was before the call.
"""
import time
import uuid

from django.conf import settings
from django.utils import timezone

from apps.authz.models import Practitioner
from apps.billing.models import PaymentModeChoices
from apps.clinical.models import (
    INACTIVE_VISIT_STATUSES,
    Dose,
    VisitStatusChoices,
    has_text,
)
from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.events import (
    log_consistency_checkpoint,
    log_consultation_completed,
)
from apps.core.observability.tracing import trace_span

from .appliers import (
    apply_billing,
    apply_clinical_details,
    apply_follow_up,
    apply_prescription_details,
)
from .exceptions import (
    NotFoundError,
    TransientInfraError,
    UnexpectedError,
    ValidationError,
)
from .reconciler import (
    resolve_bill,
    resolve_doctor,
    resolve_patient,
    resolve_prescription,
    resolve_visit,
)
from .repositories import Repository
from .results import assemble_result
from .unit_of_work import run_in_transaction

logger = get_sanitized_logger(__name__)

QUICK_CONSULTATION_NOTE = 'Quick consultation - standard prescription'
QUICK_CONSULTATION_INSTRUCTIONS = 'After food'
# Preferred default doses for quick consultations, in order
QUICK_CONSULTATION_DOSE_CODES = ('BD', 'OD')


def _workflow_setting(name):
    return settings.CONSULTATION_WORKFLOW[name]


def _run_workflow(work, operation, path=None):
    """
    Run ``work`` through the transaction boundary and classify failures.

    ValidationError, NotFoundError and TransientInfraError propagate as they
    are. Anything else is logged with its traceback and replaced by a generic
    UnexpectedError.
    """
    try:
        return run_in_transaction(work, operation=operation)
    except ValidationError:
        if path:
            metrics.consultations_completed_total.labels(path=path, result='validation_error').inc()
        raise
    except NotFoundError:
        if path:
            metrics.consultations_completed_total.labels(path=path, result='not_found').inc()
        raise
    except TransientInfraError:
        if path:
            metrics.consultations_completed_total.labels(path=path, result='transient_error').inc()
        raise
    except Exception as e:
        if path:
            metrics.consultations_completed_total.labels(path=path, result='unexpected_error').inc()
        metrics.exceptions_total.labels(
            exception_type=e.__class__.__name__,
            location=operation,
        ).inc()
        logger.exception(
            'Unexpected error in consultation workflow',
            extra={'event': 'consultation_unexpected_error', 'operation': operation}
        )
        raise UnexpectedError() from e


def _needs_prescription(uow, visit, payload, details):
    if payload.get('medicines') or payload.get('advice') or payload.get('complaints'):
        return True
    if has_text(details.get('diagnosis')) or has_text(details.get('advice')):
        return True
    return uow.prescriptions.exists(visit=visit)


def _check_consistency(visit, prescription, bill):
    checks = {
        'bill_linked': visit.bill_id == bill.id,
        'prescription_linked': prescription is None or visit.prescription_id == prescription.id,
        'paid_within_total': bill.paid_amount <= bill.total_amount,
        'due_matches_total': bill.due_amount == bill.total_amount - bill.paid_amount,
    }
    log_consistency_checkpoint(
        'consultation_aggregates_consistent',
        entity_ids={
            'visit_id': str(visit.id),
            'bill_id': str(bill.id),
            'prescription_id': str(prescription.id) if prescription else '',
        },
        checks_passed=checks,
    )


def _complete_in_transaction(uow, payload, performed_by):
    now = timezone.now()
    today = timezone.localdate(now)
    details = payload.get('consultation_details') or {}

    # 1. Patient
    patient, patient_created = resolve_patient(uow, payload.get('patient'), performed_by)

    # 2. Visit
    doctor = resolve_doctor(uow, payload.get('doctor_id'))
    visit, visit_reused = resolve_visit(
        uow,
        patient,
        doctor,
        allow_multiple=payload.get('allow_multiple_visits_per_day', False),
        performed_by=performed_by,
        now=now,
    )
    if visit.status == VisitStatusChoices.CHECKED_IN:
        visit.start_consultation(user=performed_by)

    # 3. Prescription (only when there is something to prescribe)
    prescription, prescription_reused = None, False
    if _needs_prescription(uow, visit, payload, details):
        prescription, prescription_reused = resolve_prescription(
            uow,
            visit,
            override_existing=payload.get('override_existing', False),
            performed_by=performed_by,
        )
        apply_prescription_details(
            uow,
            prescription,
            medicines=payload.get('medicines'),
            advice=payload.get('advice'),
            complaints=payload.get('complaints'),
            diagnosis=details.get('diagnosis'),
            instructions=details.get('advice'),
        )

    # 4. Bill
    fee = payload.get('consultation_fee')
    if fee is None:
        fee = doctor.consultation_fee
    tax = payload.get('tax_percentage')
    if tax is None:
        tax = _workflow_setting('DEFAULT_TAX_PERCENTAGE')
    bill, bill_reused = resolve_bill(
        uow,
        visit,
        consultation_fee=fee,
        discount_percentage=payload.get('discount_percentage') or 0,
        tax_percentage=tax,
        items=payload.get('bill_items'),
        performed_by=performed_by,
    )
    apply_billing(bill, payload.get('payment'), user=performed_by)

    # 5. Clinical details and completion
    apply_clinical_details(visit, details, user=performed_by, today=today)
    visit.add_clinical_notes(payload.get('consultation_notes'), user=performed_by)
    apply_follow_up(visit, payload.get('follow_up'), user=performed_by, today=today)

    if visit.status != VisitStatusChoices.COMPLETED:
        if not has_text(visit.chief_complaint):
            raise ValidationError({
                'chief_complaint': 'Chief complaint is required to complete the consultation'
            })
        visit.complete(user=performed_by)

    if prescription is not None:
        prescription.activate()
    uow.save_changes(visit, prescription, bill)

    _check_consistency(visit, prescription, bill)

    reused = {
        'visit': visit_reused,
        'prescription': prescription_reused,
        'bill': bill_reused,
        'new_patient': patient_created,
    }
    return assemble_result(patient, visit, prescription, bill, reused=reused)


@metrics.track_duration(metrics.consultation_duration_seconds)
def complete_consultation(payload, performed_by=None, path='complete'):
    """
    Complete one consultation atomically.

    Args:
        payload: validated request dict (see CompleteConsultationSerializer)
        performed_by: User recording the consultation
        path: label for metrics ('complete' or 'quick')

    Returns:
        ConsultationResult

    Raises:
        ValidationError: malformed input or a domain rule was violated
        NotFoundError: a referenced id does not exist
        TransientInfraError: the store kept failing after all retries
        UnexpectedError: anything else
    """
    start_time = time.time()

    with trace_span('complete_consultation', attributes={
        'consultation.path': path,
        'doctor_id': str(payload.get('doctor_id')),
    }):
        result = _run_workflow(
            lambda uow: _complete_in_transaction(uow, payload, performed_by),
            operation='complete_consultation',
            path=path,
        )

    duration_ms = (time.time() - start_time) * 1000
    metrics.consultations_completed_total.labels(path=path, result='success').inc()
    log_consultation_completed(result, result.reused, duration_ms=duration_ms)
    return result


def update_consultation(visit_id, details, performed_by=None):
    """
    Partially update the clinical fields of an existing visit.

    Only fields present and non-empty in ``details`` are written.

    Raises:
        NotFoundError: unknown visit
        ValidationError: visit is cancelled or marked no-show, or a value is
            out of range
    """
    def work(uow):
        visit = uow.visits.get_by_id(visit_id, for_update=True)
        if visit.status in INACTIVE_VISIT_STATUSES:
            raise ValidationError({
                'status': f'Cannot update a visit with status {visit.status}'
            })
        apply_clinical_details(visit, details, user=performed_by)
        uow.visits.update(visit)
        return visit

    with trace_span('update_consultation', attributes={'visit_id': str(visit_id)}):
        visit = _run_workflow(work, operation='update_consultation')

    logger.info(
        'Consultation updated',
        extra={
            'event': 'consultation_updated',
            'visit_id': str(visit.id),
            'fields': sorted(k for k, v in (details or {}).items() if v not in (None, '')),
        }
    )
    return visit


def _default_quick_dose():
    doses = Dose.objects.filter(is_active=True)
    for code in QUICK_CONSULTATION_DOSE_CODES:
        dose = doses.filter(code__iexact=code).first()
        if dose is not None:
            return dose
    dose = doses.order_by('sort_order', 'code').first()
    if dose is None:
        raise ValidationError({'dose_id': 'No active dose is configured'})
    return dose


def quick_consultation(patient_id, doctor_id, chief_complaint, diagnosis, medicine_ids,
                       performed_by=None):
    """
    Complete a standard consultation for an existing patient in one call.

    Every medicine gets the default dose (BD, else OD, else the first active
    dose) for the configured number of days, quantity 1, "After food". The
    doctor's consultation fee is billed and settled in full in cash.
    """
    errors = {}
    if not patient_id:
        errors['patient_id'] = 'Patient ID is required'
    if not doctor_id:
        errors['doctor_id'] = 'Doctor ID is required'
    if not has_text(chief_complaint):
        errors['chief_complaint'] = 'Chief complaint is required'
    if not has_text(diagnosis):
        errors['diagnosis'] = 'Diagnosis is required'
    if not medicine_ids:
        errors['medicine_ids'] = 'At least one medicine is required'
    if errors:
        metrics.consultations_completed_total.labels(path='quick', result='validation_error').inc()
        raise ValidationError(errors)

    dose = _default_quick_dose()
    doctor = Repository(Practitioner, 'Doctor').get_by_id(doctor_id)
    fee = doctor.consultation_fee
    if fee is None:
        fee = _workflow_setting('DEFAULT_CONSULTATION_FEE')

    duration_days = _workflow_setting('QUICK_CONSULTATION_DURATION_DAYS')
    transaction_id = f'QC_{timezone.now():%Y%m%d%H%M%S}_{uuid.uuid4().hex}'

    payload = {
        'patient': {'is_new_patient': False, 'existing_patient_id': patient_id},
        'doctor_id': doctor_id,
        'consultation_details': {
            'chief_complaint': chief_complaint.strip(),
            'diagnosis': diagnosis.strip(),
        },
        'medicines': [
            {
                'medicine_id': medicine_id,
                'dose_id': dose.id,
                'duration_days': duration_days,
                'quantity': 1,
                'instructions': QUICK_CONSULTATION_INSTRUCTIONS,
            }
            for medicine_id in medicine_ids
        ],
        'consultation_fee': fee,
        'payment': {
            'payment_mode': PaymentModeChoices.CASH,
            'transaction_id': transaction_id,
            'settle_in_full': True,
        },
        'consultation_notes': QUICK_CONSULTATION_NOTE,
    }
    return complete_consultation(payload, performed_by, path='quick')
